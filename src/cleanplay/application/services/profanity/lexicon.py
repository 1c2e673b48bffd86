"""Word list and token matching for the profanity censor.

Hey future me - matching is deliberately simple and deterministic:

1. Exact: the lower-cased token is in the word list (plus plain "s"/"es" plurals).
2. Stem: entries marked as stems also match as a prefix ("fuck" -> "fucking").
3. Evasion: leetspeak ("sh1t"), separators ("f.u.c.k"), stretched letters
   ("fuuuuck") and asterisks ("f*ck") are normalized and matched again. A hit
   that needed any of these also gets the EVASIVE bit at the word's severity.

Custom words (add_word/remove_word) live on the Lexicon instance, not in module
state, so tests and users never see each other's changes.
"""

import re
from dataclasses import dataclass

from cleanplay.application.services.profanity.types import (
    TYPE_CUSTOM,
    ProfanityType,
    max_severity,
)

P = ProfanityType

# word -> (type, is_stem)
DEFAULT_WORDS: dict[str, tuple[ProfanityType, bool]] = {
    # profane
    "damn": (P.PROFANE_MILD, True),
    "goddamn": (P.PROFANE_MODERATE, True),
    "hell": (P.PROFANE_MILD, False),
    "crap": (P.PROFANE_MILD, True),
    "piss": (P.PROFANE_MILD, True),
    "ass": (P.PROFANE_MILD, False),
    "arse": (P.PROFANE_MILD, False),
    "asshole": (P.PROFANE_MODERATE | P.MEAN_MODERATE, True),
    "bastard": (P.PROFANE_MODERATE | P.MEAN_MILD, True),
    "bullshit": (P.PROFANE_MODERATE, True),
    "shit": (P.PROFANE_MODERATE, True),
    "bitch": (P.PROFANE_MODERATE | P.MEAN_MODERATE, True),
    "fuck": (P.PROFANE_SEVERE, True),
    "motherfuck": (P.PROFANE_SEVERE | P.MEAN_MODERATE, True),
    "cunt": (P.PROFANE_SEVERE | P.MEAN_SEVERE, True),
    "wtf": (P.PROFANE_MODERATE, False),
    # sexual
    "dick": (P.SEXUAL_MILD | P.MEAN_MILD, False),
    "cock": (P.SEXUAL_MODERATE, False),
    "pussy": (P.SEXUAL_MODERATE, False),
    "pussies": (P.SEXUAL_MODERATE, False),
    "tits": (P.SEXUAL_MODERATE, False),
    "titties": (P.SEXUAL_MODERATE, False),
    "boobs": (P.SEXUAL_MILD, False),
    "horny": (P.SEXUAL_MILD, False),
    "cum": (P.SEXUAL_MODERATE, False),
    "dildo": (P.SEXUAL_MODERATE, True),
    "porn": (P.SEXUAL_MODERATE, True),
    "blowjob": (P.SEXUAL_SEVERE, True),
    "slut": (P.SEXUAL_MODERATE | P.MEAN_MODERATE, True),
    "whore": (P.SEXUAL_MODERATE | P.MEAN_MODERATE, True),
    "hoe": (P.SEXUAL_MILD | P.MEAN_MILD, False),
    # mean
    "idiot": (P.MEAN_MILD, True),
    "moron": (P.MEAN_MILD, True),
    "dumbass": (P.MEAN_MODERATE | P.PROFANE_MILD, True),
    "jackass": (P.MEAN_MODERATE | P.PROFANE_MILD, True),
    "retard": (P.MEAN_SEVERE | P.OFFENSIVE_SEVERE, True),
    # offensive (slurs)
    "nigga": (P.OFFENSIVE_MODERATE, True),
    "nigger": (P.OFFENSIVE_SEVERE, True),
    "fag": (P.OFFENSIVE_SEVERE, False),
    "faggot": (P.OFFENSIVE_SEVERE, True),
}

LEET_MAP = str.maketrans(
    {"0": "o", "1": "i", "3": "e", "4": "a", "5": "s", "7": "t", "@": "a", "$": "s", "!": "i"}
)
_SEPARATORS = re.compile(r"[.\-_]")
_STRETCH = re.compile(r"(\w)\1{2,}")

_EVASIVE_FOR_SEVERITY = {
    P.MILD: P.EVASIVE_MILD,
    P.MODERATE: P.EVASIVE_MODERATE,
    P.SEVERE: P.EVASIVE_SEVERE,
}


@dataclass(frozen=True)
class WordMatch:
    """Result of matching one token."""

    typ: ProfanityType
    evasive: bool


class Lexicon:
    """Mutable word list with deterministic matching."""

    def __init__(self, words: dict[str, tuple[ProfanityType, bool]] | None = None) -> None:
        source = DEFAULT_WORDS if words is None else words
        self._words: dict[str, ProfanityType] = {}
        self._stems: dict[str, ProfanityType] = {}
        for word, (typ, is_stem) in source.items():
            self._store(word, typ, is_stem)

    def _store(self, word: str, typ: ProfanityType, is_stem: bool) -> None:
        word = word.lower()
        if is_stem:
            self._stems[word] = typ
        self._words[word] = typ

    def add_word(self, word: str, typ: ProfanityType = TYPE_CUSTOM) -> None:
        """Add (or re-type) a word; added words match exactly."""
        self._store(word, typ, is_stem=False)

    def remove_word(self, word: str) -> None:
        """Make a word harmless. Also disables it as a stem."""
        word = word.lower()
        self._words[word] = P.NONE
        self._stems.pop(word, None)

    def __contains__(self, word: str) -> bool:
        return bool(self._words.get(word.lower(), P.NONE))

    def _lookup(self, candidate: str) -> ProfanityType:
        if not candidate:
            return P.NONE
        if candidate in self._words:
            return self._words[candidate]
        for suffix in ("s", "es"):
            if candidate.endswith(suffix):
                base = candidate[: -len(suffix)]
                typ = self._words.get(base, P.NONE)
                if typ:
                    return typ
        # Longest stem wins, so "motherfucker" is typed as motherfuck, not fuck.
        for stem in sorted(self._stems, key=len, reverse=True):
            if candidate.startswith(stem) and self._stems[stem]:
                return self._stems[stem]
        return P.NONE

    def _wildcard_lookup(self, candidate: str) -> ProfanityType:
        pattern = re.compile(re.escape(candidate).replace(r"\*", "[a-z]"))
        for word in sorted(self._words):
            typ = self._words[word]
            if typ and len(word) == len(candidate) and pattern.fullmatch(word):
                return typ
        return P.NONE

    def match(self, token: str) -> WordMatch | None:
        """Classify a token, None when it is clean."""
        lowered = token.lower()

        direct = self._lookup(lowered)
        if direct:
            return WordMatch(direct, evasive=False)

        normalized = _SEPARATORS.sub("", lowered).translate(LEET_MAP)
        candidates = [normalized]
        if _STRETCH.search(normalized):
            candidates.append(_STRETCH.sub(r"\1\1", normalized))
            candidates.append(_STRETCH.sub(r"\1", normalized))

        for candidate in candidates:
            if candidate == lowered:
                continue
            typ = self._lookup(candidate)
            if typ:
                return WordMatch(typ | self._evasive_bit(typ), evasive=True)

        if "*" in normalized and normalized.strip("*"):
            typ = self._wildcard_lookup(normalized)
            if typ:
                return WordMatch(typ | self._evasive_bit(typ), evasive=True)

        return None

    @staticmethod
    def _evasive_bit(typ: ProfanityType) -> ProfanityType:
        return _EVASIVE_FOR_SEVERITY.get(max_severity(typ), P.EVASIVE_MILD)
