"""Line-level profanity analysis of lyrics.

No I/O, no randomness: the same lines against the same lexicon always produce the
same CheckResult. That's what makes re-processing a queue job harmless.
"""

import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

from cleanplay.application.services.profanity.lexicon import Lexicon
from cleanplay.application.services.profanity.types import (
    TYPE_THRESHOLD,
    TYPE_TRIGGER,
    ProfanityType,
)

CENSOR_CHAR = "*"
SPOILER = "||"

# Words may carry leetspeak/evasion characters and inner dots or dashes ("f.u.c.k").
_TOKEN = re.compile(r"[\w@$!*]+(?:[.\-][\w@$!*]+)*")
# "yeaaaaaah" - letters stretched this far without a bad word are just spam.
_SPAM_STRETCH = re.compile(r"(\w)\1{4,}")


@dataclass(frozen=True)
class LineResult:
    """Classification of one lyric line."""

    no: int
    typ: ProfanityType
    line: str
    bad_chars: tuple[int, ...] = ()
    words: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_flagged(self) -> bool:
        return self.typ.is_(TYPE_TRIGGER)

    def highlighted(
        self,
        open_marker: str = SPOILER,
        close_marker: str = SPOILER,
        escape: Callable[[str], str] | None = None,
    ) -> str:
        """The line with every run of bad characters wrapped in markers.

        Args:
            open_marker: Inserted before a run
            close_marker: Inserted after a run
            escape: Applied to each text chunk (not to the markers), e.g. html.escape
        """
        escape = escape or (lambda text: text)
        bad = set(self.bad_chars)
        out: list[str] = []
        chunk: list[str] = []
        in_run = False

        for i, char in enumerate(self.line):
            is_bad = i in bad
            if is_bad != in_run:
                out.append(escape("".join(chunk)))
                chunk = []
                out.append(open_marker if is_bad else close_marker)
                in_run = is_bad
            chunk.append(char)
        out.append(escape("".join(chunk)))
        if in_run:
            out.append(close_marker)
        return "".join(out)


@dataclass(frozen=True)
class CheckResult:
    """All lines of a track plus the aggregate type."""

    lines: tuple[LineResult, ...]
    typ: ProfanityType

    def __iter__(self) -> Iterator[LineResult]:
        return iter(self.lines)

    def should_trigger(self) -> bool:
        return self.typ.is_(TYPE_TRIGGER)

    def flagged_lines(self) -> list[LineResult]:
        return [line for line in self.lines if line.is_flagged]

    def profane_words(self) -> set[str]:
        """Distinct lower-cased trigger words across all flagged lines."""
        words: set[str] = set()
        for line in self.flagged_lines():
            words |= line.words
        return words

    def filter_allowed(self, allowed_words: Iterable[str]) -> list[LineResult]:
        """Flagged lines that still have a trigger word outside the allow-list."""
        allowed = {word.lower() for word in allowed_words}
        return [line for line in self.flagged_lines() if line.words - allowed]


class ProfanityAnalyzer:
    """Censor-and-classify lyrics with a Lexicon."""

    def __init__(self, lexicon: Lexicon | None = None) -> None:
        self.lexicon = lexicon or Lexicon()

    def add_word(self, word: str) -> None:
        self.lexicon.add_word(word)

    def remove_word(self, word: str) -> None:
        self.lexicon.remove_word(word)

    def censor(self, line: str) -> tuple[str, ProfanityType, frozenset[str]]:
        """Censor one line.

        Returns:
            (censored line, type, lower-cased trigger words)
        """
        typ = ProfanityType.NONE
        words: set[str] = set()
        censored = list(line)

        for token in _TOKEN.finditer(line):
            text = token.group()
            start = token.start()
            # Trailing "!" is punctuation, not an "i".
            stripped = text.rstrip("!")
            if not stripped.strip(CENSOR_CHAR):
                continue

            found = self.lexicon.match(stripped)
            if found is None:
                if _SPAM_STRETCH.search(stripped):
                    typ |= ProfanityType.SPAM_MILD
                continue

            typ |= found.typ
            words.add(stripped.lower())
            for i in range(start, start + len(stripped)):
                censored[i] = CENSOR_CHAR

        if typ.isnt(TYPE_THRESHOLD):
            typ = ProfanityType.SAFE
        return "".join(censored), typ, frozenset(words)

    def check_line(self, no: int, line: str) -> LineResult:
        censored, typ, words = self.censor(line)
        if typ.isnt(TYPE_THRESHOLD):
            return LineResult(no=no, typ=ProfanityType.SAFE, line=line)

        bad_chars = tuple(
            i for i, (original, masked) in enumerate(zip(line, censored)) if original != masked
        )
        return LineResult(no=no, typ=typ, line=line, bad_chars=bad_chars, words=words)

    def check(self, lines: Iterable[str]) -> CheckResult:
        """Classify every line; the aggregate is the union of flagged line types."""
        results = tuple(self.check_line(no, line) for no, line in enumerate(lines))
        aggregate = ProfanityType.NONE
        for result in results:
            if result.typ.is_(TYPE_THRESHOLD):
                aggregate |= result.typ
        return CheckResult(lines=results, typ=aggregate)
