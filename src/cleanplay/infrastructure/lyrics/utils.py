"""Helpers shared by the lyrics providers: name variants, similarity, language."""

import logging
import re

from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException
from rapidfuzz.distance import DamerauLevenshtein

logger = logging.getLogger(__name__)

# langdetect is probabilistic; a fixed seed makes the same text always give the same answer.
DetectorFactory.seed = 0

BEST_FIT_THRESHOLD = 0.6

# "Song - Remastered 2011" -> "Song"
_RE_EXTRA_SUFFIX = re.compile(r"\s-\s.*")
# Anything that is not a letter (or underscore) collapses to a space.
_RE_NON_LETTERS = re.compile(r"[\W\d]+")
# "Song - feat. X" / "Song - with X"
_RE_FEAT_DASH = re.compile(r"-\s+(feat|with).*", re.IGNORECASE)
# "Song (feat. X)" / "Song [with X]"
_RE_FEAT_BRACKETS = re.compile(r"(\(|\[)(feat|with)\.?\s+.*(\)|\])$", re.IGNORECASE)


def remove_extra_info(name: str) -> str:
    name = _RE_EXTRA_SUFFIX.sub("", name)
    return _RE_NON_LETTERS.sub(" ", name).strip()


def remove_song_feat(name: str) -> str:
    name = _RE_FEAT_DASH.sub("", name)
    return _RE_FEAT_BRACKETS.sub("", name).strip()


# Hey future me - providers index tracks inconsistently, some keep "(feat. X)", some
# drop " - Radio Edit". So we try the raw name first and then cleaned forms. Order
# matters (first confident hit wins) and duplicates are dropped.
def get_track_names(name: str) -> list[str]:
    """Title variants to search for, raw name first."""
    no_extra = remove_extra_info(name)
    candidates = [name, no_extra, remove_song_feat(name), remove_song_feat(no_extra)]

    variants: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants


def similarity(a: str, b: str) -> float:
    """Case-insensitive normalized Damerau-Levenshtein similarity in [0, 1].

    Symmetric; equal strings give 1.0.
    """
    return DamerauLevenshtein.normalized_similarity(a.lower(), b.lower())


def detect_language(lines: list[str]) -> str | None:
    """ISO 639-1 code of the lyrics' language, None when undetectable."""
    text = "\n".join(line for line in lines if line.strip())
    if not text:
        return None
    try:
        return detect(text)
    except LangDetectException:
        logger.debug("Could not detect lyrics language")
        return None


def split_lines(text: str) -> list[str]:
    """Split lyrics into lines, trimming blank lines at both ends."""
    lines = [line.strip() for line in text.splitlines()]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return lines
