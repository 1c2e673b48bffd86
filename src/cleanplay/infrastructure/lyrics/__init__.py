"""Lyrics providers."""

from cleanplay.infrastructure.lyrics.azlyrics import AZLyricsProvider
from cleanplay.infrastructure.lyrics.cache import LyricsCache
from cleanplay.infrastructure.lyrics.genius import GeniusProvider
from cleanplay.infrastructure.lyrics.lrclib import LrcLibProvider
from cleanplay.infrastructure.lyrics.musixmatch import MusixmatchProvider

__all__ = [
    "AZLyricsProvider",
    "GeniusProvider",
    "LrcLibProvider",
    "LyricsCache",
    "MusixmatchProvider",
]
