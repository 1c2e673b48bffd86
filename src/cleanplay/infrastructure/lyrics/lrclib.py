"""LrcLib provider (https://lrclib.net), public JSON API."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from cleanplay.domain.entities import LyricsProvider, LyricsSearchResult, ShortTrack
from cleanplay.infrastructure.lyrics.base import HttpLyricsProvider
from cleanplay.infrastructure.lyrics.utils import (
    BEST_FIT_THRESHOLD,
    detect_language,
    get_track_names,
    split_lines,
)

logger = logging.getLogger(__name__)


class LrcLibProvider(HttpLyricsProvider):
    """Search lrclib by artist, title variant and album."""

    threshold = BEST_FIT_THRESHOLD

    def __init__(
        self,
        base_url: str,
        client_name: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self.base_url = base_url.rstrip("/")
        self.client_name = client_name

    @property
    def provider(self) -> LyricsProvider:
        return LyricsProvider.LRCLIB

    async def _search(self, track: ShortTrack) -> LyricsSearchResult | None:
        client = await self._get_client()
        artist = track.first_artist or "Unknown"
        hits_count = 0

        for variant_i, variant in enumerate(get_track_names(track.name)):
            response = await client.get(
                f"{self.base_url}/search",
                params={
                    "artist_name": artist,
                    "track_name": variant,
                    "album_name": track.album_name,
                },
                headers={"Lrclib-Client": self.client_name},
            )
            response.raise_for_status()
            hits: list[dict[str, Any]] = response.json()
            hits_count += len(hits)

            for hit_i, hit in enumerate(hits):
                plain = hit.get("plainLyrics")
                if not plain:
                    # instrumental or synced-only
                    continue
                confidence = self.score(
                    artist, variant, hit.get("artistName", ""), hit.get("trackName", "")
                )
                if not confidence.is_confident(self.threshold):
                    continue

                logger.debug(
                    "LrcLib: hit %d of variant %d (%s) with %d%% confidence",
                    hit_i + 1,
                    variant_i + 1,
                    variant,
                    confidence.percent,
                )
                lines = split_lines(plain)
                return LyricsSearchResult(
                    provider=self.provider,
                    confidence=confidence,
                    lines=lines,
                    link=f"https://lrclib.net/search/{quote(f'{artist} {track.name}')}",
                    title=f"{hit.get('artistName', artist)} - {hit.get('trackName', variant)}",
                    language=detect_language(lines),
                )

        logger.info("LrcLib: no text in %d hits for %s", hits_count, track.name_with_artists)
        return None
