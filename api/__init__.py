"""HTTP API for station reports."""
