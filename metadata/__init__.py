"""Song identity and external metadata lookups."""

from metadata.song import Song, offline_song_id

__all__ = ["Song", "offline_song_id"]
