"""Lyrics acquisition pipeline: ordered providers with per-provider caching."""

import logging

from cleanplay.domain.entities import LyricsSearchResult, ShortTrack
from cleanplay.domain.ports import ILyricsProvider
from cleanplay.infrastructure.lyrics.cache import LyricsCache

logger = logging.getLogger(__name__)


# Hey future me - providers are tried in the order given (AppContext wires Musixmatch,
# LrcLib, AZLyrics, Genius). First confident hit wins. A provider blowing up is just
# "no answer" from that provider: log it and move on. The caller only ever sees a
# result or None, never a provider exception. Each provider's answer, hit or "nothing",
# is cached per track, so a repeat job never hits the network for a cached provider.
class LyricsManager:
    """Find lyrics for a track across providers."""

    def __init__(self, providers: list[ILyricsProvider], cache: LyricsCache | None = None) -> None:
        self.providers = providers
        self.cache = cache

    async def search_for_track(self, track: ShortTrack) -> LyricsSearchResult | None:
        """
        Search lyrics.

        Args:
            track: Track snapshot

        Returns:
            First confident result, None when no provider found anything
        """
        for provider in self.providers:
            kind = provider.provider
            if self.cache is not None:
                cached, result = await self.cache.lookup(kind, track.id)
                if cached:
                    logger.debug("%s: cache hit for %s", kind.label, track.id)
                    if result is None:
                        continue
                    return result

            try:
                result = await provider.search(track)
            except Exception as e:
                # Network, HTTP status, bad JSON, changed HTML... all mean "no answer".
                # Not cached, the next job for this track asks again.
                logger.error(
                    "Error with %s for %s: %s", kind.label, track.name_with_artists, e, exc_info=True
                )
                continue

            if self.cache is not None:
                await self.cache.set(kind, track.id, result)
            if result is None:
                continue

            logger.info(
                "Lyrics for %s found at %s (%d%% confidence)",
                track.name_with_artists,
                kind.label,
                result.confidence.percent,
            )
            return result

        logger.info("No lyrics found for %s", track.name_with_artists)
        return None

    async def close(self) -> None:
        for provider in self.providers:
            close = getattr(provider, "close", None)
            if close is not None:
                await close()
