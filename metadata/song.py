"""Song identity as recorded in play history."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

OFFLINE_SONG_TITLE = "Stream Offline"
_MAX_HASH_TEXT_LENGTH = 150
_STRIPPED_CHARS = (" ", "-", '"', "'", "\n", "\t", "\r")


def song_text(artist: str | None, title: str | None, text: str | None = None) -> str:
    artist_value = (artist or "").strip()
    title_value = (title or "").strip()
    if artist_value:
        return f"{artist_value} - {title_value}"
    return title_value or (text or "").strip()


def song_hash(text: str) -> str:
    """Return the stable identifier for a song text.

    Characters commonly mangled in stream metadata are ignored, as is case.
    """
    value = (text or "")[:_MAX_HASH_TEXT_LENGTH]
    for char in _STRIPPED_CHARS:
        value = value.replace(char, "")
    return hashlib.md5(value.lower().encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Song:
    artist: str | None = None
    title: str | None = None
    album: str | None = None
    text: str | None = None

    @property
    def song_id(self) -> str:
        return song_hash(song_text(self.artist, self.title, self.text))

    @classmethod
    def create_offline(cls) -> "Song":
        return cls(title=OFFLINE_SONG_TITLE, text=OFFLINE_SONG_TITLE)


def offline_song_id() -> str:
    return Song.create_offline().song_id
