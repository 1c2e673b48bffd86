"""Profanity type bitmask.

Six categories, each with three severity bits (mild, moderate, severe), plus SAFE.
Composites select across categories (MILD = every *_MILD bit) or across severities
(PROFANE = every PROFANE_* bit). "x is y" in the checks below means the masks
intersect, not equality.
"""

from enum import IntFlag


class ProfanityType(IntFlag):
    """Classification of a word, line or whole track."""

    NONE = 0

    PROFANE_MILD = 1 << 0
    PROFANE_MODERATE = 1 << 1
    PROFANE_SEVERE = 1 << 2
    OFFENSIVE_MILD = 1 << 3
    OFFENSIVE_MODERATE = 1 << 4
    OFFENSIVE_SEVERE = 1 << 5
    SEXUAL_MILD = 1 << 6
    SEXUAL_MODERATE = 1 << 7
    SEXUAL_SEVERE = 1 << 8
    MEAN_MILD = 1 << 9
    MEAN_MODERATE = 1 << 10
    MEAN_SEVERE = 1 << 11
    EVASIVE_MILD = 1 << 12
    EVASIVE_MODERATE = 1 << 13
    EVASIVE_SEVERE = 1 << 14
    SPAM_MILD = 1 << 15
    SPAM_MODERATE = 1 << 16
    SPAM_SEVERE = 1 << 17

    SAFE = 1 << 18

    PROFANE = PROFANE_MILD | PROFANE_MODERATE | PROFANE_SEVERE
    OFFENSIVE = OFFENSIVE_MILD | OFFENSIVE_MODERATE | OFFENSIVE_SEVERE
    SEXUAL = SEXUAL_MILD | SEXUAL_MODERATE | SEXUAL_SEVERE
    MEAN = MEAN_MILD | MEAN_MODERATE | MEAN_SEVERE
    EVASIVE = EVASIVE_MILD | EVASIVE_MODERATE | EVASIVE_SEVERE
    SPAM = SPAM_MILD | SPAM_MODERATE | SPAM_SEVERE

    MILD = (
        PROFANE_MILD | OFFENSIVE_MILD | SEXUAL_MILD | MEAN_MILD | EVASIVE_MILD | SPAM_MILD
    )
    MODERATE = (
        PROFANE_MODERATE
        | OFFENSIVE_MODERATE
        | SEXUAL_MODERATE
        | MEAN_MODERATE
        | EVASIVE_MODERATE
        | SPAM_MODERATE
    )
    SEVERE = (
        PROFANE_SEVERE
        | OFFENSIVE_SEVERE
        | SEXUAL_SEVERE
        | MEAN_SEVERE
        | EVASIVE_SEVERE
        | SPAM_SEVERE
    )
    MILD_OR_HIGHER = MILD | MODERATE | SEVERE
    MODERATE_OR_HIGHER = MODERATE | SEVERE

    INAPPROPRIATE = PROFANE | OFFENSIVE | SEXUAL | MEAN
    ANY = INAPPROPRIATE | EVASIVE | SPAM

    def is_(self, other: "ProfanityType") -> bool:
        """True when any bit of `other` is set."""
        return bool(self & other)

    def isnt(self, other: "ProfanityType") -> bool:
        return not self.is_(other)

    def describe(self) -> str:
        """Human readable name, e.g. "severe profane sexual ⛔" or "safe 🟢"."""
        if self.isnt(TYPE_THRESHOLD):
            return "safe 🟢"

        if self.is_(ProfanityType.SEVERE):
            level, emoji = "severe", "⛔"
        elif self.is_(ProfanityType.MODERATE):
            level, emoji = "moderate", "🟠"
        else:
            level, emoji = "mild", "🟡"

        categories = [name for name, mask in _CATEGORIES if self.is_(mask)]
        return f"{level} {' '.join(categories)} {emoji}"


_CATEGORIES = (
    ("profane", ProfanityType.PROFANE),
    ("offensive", ProfanityType.OFFENSIVE),
    ("sexual", ProfanityType.SEXUAL),
    ("mean", ProfanityType.MEAN),
    ("evasive", ProfanityType.EVASIVE),
    ("spam", ProfanityType.SPAM),
)

# Lines whose type doesn't intersect this are considered safe.
TYPE_THRESHOLD = ProfanityType.ANY
# A track is reported when the aggregate intersects this (spam alone never triggers).
TYPE_TRIGGER = ProfanityType.INAPPROPRIATE | ProfanityType.EVASIVE
# Words added at runtime without an explicit type.
TYPE_CUSTOM = ProfanityType.EVASIVE_MODERATE


def max_severity(typ: ProfanityType) -> ProfanityType:
    """MILD, MODERATE or SEVERE composite for the highest severity present, NONE if none."""
    for level in (ProfanityType.SEVERE, ProfanityType.MODERATE, ProfanityType.MILD):
        if typ.is_(level):
            return level
    return ProfanityType.NONE
