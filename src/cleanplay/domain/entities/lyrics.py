"""Lyrics search results.

Hey future me - the provider set is closed (four providers, fixed priority), so the
result is ONE dataclass tagged with a LyricsProvider enum instead of a class per
provider. That also makes the cache format trivial: to_json/from_json.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class LyricsProvider(str, Enum):
    """Known lyrics providers, in lookup priority order."""

    MUSIXMATCH = "musixmatch"
    LRCLIB = "lrclib"
    AZLYRICS = "azlyrics"
    GENIUS = "genius"

    @property
    def label(self) -> str:
        return _PROVIDER_LABELS[self]


_PROVIDER_LABELS = {
    LyricsProvider.MUSIXMATCH: "Musixmatch",
    LyricsProvider.LRCLIB: "LrcLib",
    LyricsProvider.AZLYRICS: "AZLyrics",
    LyricsProvider.GENIUS: "Genius",
}


@dataclass(frozen=True)
class Confidence:
    """Similarity of a search hit to the query, per component, both in [0, 1]."""

    artist: float
    title: float

    def is_confident(self, threshold: float) -> bool:
        return self.artist >= threshold and self.title >= threshold

    @property
    def percent(self) -> int:
        return round((self.artist + self.title) / 2 * 100)


@dataclass
class LyricsSearchResult:
    """Lyrics found by one provider."""

    provider: LyricsProvider
    confidence: Confidence
    lines: list[str]
    link: str
    title: str = ""
    language: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_english(self) -> bool:
        return self.language == "en"

    def to_json(self) -> str:
        return json.dumps(
            {
                "provider": self.provider.value,
                "confidence": [self.confidence.artist, self.confidence.title],
                "lines": self.lines,
                "link": self.link,
                "title": self.title,
                "language": self.language,
                "extra": self.extra,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> "LyricsSearchResult":
        data = json.loads(raw)
        artist, title = data["confidence"]
        return cls(
            provider=LyricsProvider(data["provider"]),
            confidence=Confidence(artist=float(artist), title=float(title)),
            lines=list(data["lines"]),
            link=data["link"],
            title=data.get("title", ""),
            language=data.get("language"),
            extra=data.get("extra") or {},
        )
