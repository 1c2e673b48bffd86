"""AZLyrics provider.

Search goes through a small search proxy (web search restricted to azlyrics.com)
returning [{"title": ..., "link": ...}]. The lyrics page itself is fetched and
scraped here: the lyrics are the unnamed div right after the two <br> tags.

Hit titles look like '"Artist" - Title Lyrics | AZLyrics.com', so confidence is a
single similarity between that whole string and the query rendered the same way.
The hit has to clear the usual best-fit threshold.
"""

import logging
from typing import Any

import httpx
from bs4 import BeautifulSoup

from cleanplay.domain.entities import Confidence, LyricsProvider, LyricsSearchResult, ShortTrack
from cleanplay.infrastructure.lyrics.base import HttpLyricsProvider
from cleanplay.infrastructure.lyrics.utils import (
    BEST_FIT_THRESHOLD,
    detect_language,
    get_track_names,
    similarity,
    split_lines,
)

logger = logging.getLogger(__name__)

LYRICS_SELECTOR = "br + br + div"


def clean_hit_title(title: str) -> str:
    title = title.lower()
    for junk in ("|", "-", "azlyrics.com", "azlyrics"):
        title = title.replace(junk, "")
    return " ".join(title.split())


def query_title(artist: str, name: str) -> str:
    return " ".join(f'"{artist.lower()}" {name.lower()} lyrics'.split())


def extract_lyrics(html: str) -> list[str]:
    """Pull the lyric lines out of an AZLyrics song page."""
    soup = BeautifulSoup(html, "html.parser")
    node = soup.select_one(LYRICS_SELECTOR)
    if node is None:
        return []
    return split_lines(node.get_text())


class AZLyricsProvider(HttpLyricsProvider):
    """AZLyrics through a search proxy plus direct page scraping."""

    threshold = BEST_FIT_THRESHOLD

    def __init__(
        self,
        service_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self.service_url = service_url.rstrip("/")

    @property
    def provider(self) -> LyricsProvider:
        return LyricsProvider.AZLYRICS

    async def _search(self, track: ShortTrack) -> LyricsSearchResult | None:
        client = await self._get_client()
        artist = track.first_artist or "Unknown"
        hits_count = 0

        for variant in get_track_names(track.name):
            response = await client.get(
                f"{self.service_url}/search", params={"q": f"{artist} {variant}"}
            )
            response.raise_for_status()
            hits: list[dict[str, Any]] = response.json()
            hits_count += len(hits)

            expected = query_title(artist, variant)
            for hit in hits:
                title, link = hit.get("title") or "", hit.get("link") or ""
                if not link:
                    continue
                value = similarity(expected, clean_hit_title(title))
                confidence = Confidence(artist=value, title=value)
                if not confidence.is_confident(self.threshold):
                    continue

                page = await client.get(link)
                page.raise_for_status()
                lines = extract_lyrics(page.text)
                if not lines:
                    logger.warning("AZLyrics: lyrics block not found on %s", link)
                    return None

                return LyricsSearchResult(
                    provider=self.provider,
                    confidence=confidence,
                    lines=lines,
                    link=link,
                    title=title,
                    language=detect_language(lines),
                )

        logger.info("AZLyrics: no text in %d hits for %s", hits_count, track.name_with_artists)
        return None
