"""Profanity detection for lyrics."""

from cleanplay.application.services.profanity.analyzer import (
    CheckResult,
    LineResult,
    ProfanityAnalyzer,
)
from cleanplay.application.services.profanity.lexicon import Lexicon, WordMatch
from cleanplay.application.services.profanity.types import (
    TYPE_CUSTOM,
    TYPE_THRESHOLD,
    TYPE_TRIGGER,
    ProfanityType,
)

__all__ = [
    "CheckResult",
    "LineResult",
    "ProfanityAnalyzer",
    "Lexicon",
    "WordMatch",
    "ProfanityType",
    "TYPE_CUSTOM",
    "TYPE_THRESHOLD",
    "TYPE_TRIGGER",
]
