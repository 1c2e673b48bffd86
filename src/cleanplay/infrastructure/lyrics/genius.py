"""Genius provider through the Genius API proxy service."""

import logging
from typing import Any

import httpx

from cleanplay.domain.entities import LyricsProvider, LyricsSearchResult, ShortTrack
from cleanplay.infrastructure.lyrics.base import HttpLyricsProvider
from cleanplay.infrastructure.lyrics.utils import (
    detect_language,
    get_track_names,
    split_lines,
)

logger = logging.getLogger(__name__)

# Genius titles often carry "Remix", "Live" and similar tails the Spotify name lacks,
# so hits are accepted at a lower score than the other providers use.
GENIUS_THRESHOLD = 0.45


class GeniusProvider(HttpLyricsProvider):
    """Search and fetch lyrics via the proxy (Authorization header carries the Genius token).

    Proxy endpoints:
        GET /search?q=...      -> [{id, url, fullTitle, title, artist: {name}}]
        GET /{id}/lyrics       -> {lyrics}; 404 when Genius has no lyrics
    """

    threshold = GENIUS_THRESHOLD

    def __init__(
        self,
        service_url: str,
        token: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self.service_url = service_url.rstrip("/")
        self.token = token

    @property
    def provider(self) -> LyricsProvider:
        return LyricsProvider.GENIUS

    async def _fetch_lyrics(self, hit_id: int | str) -> list[str]:
        client = await self._get_client()
        response = await client.get(
            f"{self.service_url}/{hit_id}/lyrics", headers={"Authorization": self.token}
        )
        if response.status_code == 404:
            return []
        response.raise_for_status()
        return split_lines(response.json().get("lyrics") or "")

    async def _search(self, track: ShortTrack) -> LyricsSearchResult | None:
        client = await self._get_client()
        artist = track.first_artist
        if not artist:
            return None
        hits_count = 0

        for variant in get_track_names(track.name):
            response = await client.get(
                f"{self.service_url}/search",
                params={"q": f"{variant} {artist}"},
                headers={"Authorization": self.token},
            )
            response.raise_for_status()
            hits: list[dict[str, Any]] = response.json()
            hits_count += len(hits)

            for hit in hits:
                hit_artist = (hit.get("artist") or {}).get("name", "")
                confidence = self.score(artist, variant, hit_artist, hit.get("title", ""))
                if not confidence.is_confident(self.threshold):
                    continue

                lines = await self._fetch_lyrics(hit["id"])
                if not lines:
                    return None
                full_title = " ".join((hit.get("fullTitle") or hit.get("full_title") or "").split())
                return LyricsSearchResult(
                    provider=self.provider,
                    confidence=confidence,
                    lines=lines,
                    link=hit.get("url", ""),
                    title=full_title,
                    language=detect_language(lines),
                )

        logger.info("Genius: no text in %d hits for %s", hits_count, track.name_with_artists)
        return None
