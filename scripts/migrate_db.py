#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sqlite3

from config.settings import DB_PATH
from db.migrations import applied_migrations, migrate_down, migrate_up


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Apply or revert station report schema migrations.")
    parser.add_argument("direction", nargs="?", choices=("up", "down", "status"), default="up")
    parser.add_argument("--db", default=DB_PATH, help="SQLite database path.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    conn = sqlite3.connect(args.db)
    try:
        if args.direction == "up":
            applied = migrate_up(conn)
            print(f"Applied: {', '.join(applied) if applied else 'nothing to apply'}")
        elif args.direction == "down":
            reverted = migrate_down(conn)
            print(f"Reverted: {reverted or 'nothing to revert'}")
        else:
            for version in applied_migrations(conn):
                print(version)
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
