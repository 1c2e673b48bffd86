"""Common plumbing for HTTP lyrics providers."""

import logging
from abc import abstractmethod

import httpx

from cleanplay.domain.entities import Confidence, LyricsSearchResult, ShortTrack
from cleanplay.domain.ports import ILyricsProvider
from cleanplay.infrastructure.lyrics.utils import similarity

logger = logging.getLogger(__name__)


class HttpLyricsProvider(ILyricsProvider):
    """Lyrics provider talking HTTP through a lazily created httpx client.

    Subclasses implement _search(). Errors are NOT caught here: LyricsManager logs
    them and falls through to the next provider.
    """

    threshold: float = 0.6

    def __init__(self, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self._timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def score(query_artist: str, query_title: str, hit_artist: str, hit_title: str) -> Confidence:
        """Confidence pair of a hit against the query."""
        return Confidence(
            artist=similarity(query_artist, hit_artist),
            title=similarity(query_title, hit_title),
        )

    async def search(self, track: ShortTrack) -> LyricsSearchResult | None:
        result = await self._search(track)
        if result is None:
            logger.debug("%s: no text for %s", self.provider.label, track.name_with_artists)
        return result

    @abstractmethod
    async def _search(self, track: ShortTrack) -> LyricsSearchResult | None:
        pass
