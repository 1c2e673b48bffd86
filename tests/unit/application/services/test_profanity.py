"""Tests for the profanity lexicon, types and analyzer."""

import html

import pytest

from cleanplay.application.services.profanity import (
    TYPE_CUSTOM,
    TYPE_TRIGGER,
    Lexicon,
    ProfanityAnalyzer,
    ProfanityType,
)

# Hey future me - these tests pin DETERMINISM as much as vocabulary. The consumer may
# process a job twice, and the second message must match the first.

P = ProfanityType


class TestProfanityType:
    """Test the bitmask helpers."""

    def test_is_means_intersection(self) -> None:
        """is_ is true when any bit overlaps."""
        typ = P.PROFANE_SEVERE | P.SEXUAL_MILD

        assert typ.is_(P.SEXUAL)
        assert typ.is_(P.SEVERE)
        assert typ.isnt(P.MEAN)

    def test_trigger_excludes_spam(self) -> None:
        """Spam alone never triggers a notification."""
        assert P.SPAM_SEVERE.isnt(TYPE_TRIGGER)
        assert P.EVASIVE_MILD.is_(TYPE_TRIGGER)
        assert P.OFFENSIVE_MILD.is_(TYPE_TRIGGER)

    def test_describe(self) -> None:
        """Highest severity plus every present category."""
        assert (P.PROFANE_SEVERE | P.SEXUAL_MODERATE).describe() == "severe profane sexual ⛔"
        assert P.MEAN_MILD.describe() == "mild mean 🟡"
        assert P.SAFE.describe() == "safe 🟢"
        assert P.NONE.describe() == "safe 🟢"


class TestLexicon:
    """Test token matching."""

    @pytest.fixture
    def lexicon(self) -> Lexicon:
        return Lexicon()

    def test_exact_match(self, lexicon: Lexicon) -> None:
        """Listed words match without the evasive bit."""
        match = lexicon.match("Shit")

        assert match is not None
        assert match.typ == P.PROFANE_MODERATE
        assert match.evasive is False

    def test_stem_match(self, lexicon: Lexicon) -> None:
        """Stems match inflections, the longest stem wins."""
        assert lexicon.match("fucking").typ == P.PROFANE_SEVERE
        assert lexicon.match("motherfucker").typ == P.PROFANE_SEVERE | P.MEAN_MODERATE

    def test_plural(self, lexicon: Lexicon) -> None:
        """Plain plurals of exact words match."""
        assert lexicon.match("bitches") is not None
        assert lexicon.match("hells") is not None

    def test_innocent_words(self, lexicon: Lexicon) -> None:
        """Words merely containing a listed word are clean."""
        for word in ("hello", "class", "assassin", "cucumber", "this", "is"):
            assert lexicon.match(word) is None, word

    @pytest.mark.parametrize("token", ["sh1t", "$hit", "sh!t", "s.h.i.t", "shiiiiit", "sh*t"])
    def test_evasions(self, lexicon: Lexicon, token: str) -> None:
        """Leetspeak, separators, stretching and asterisks are seen through and flagged evasive."""
        match = lexicon.match(token)

        assert match is not None
        assert match.evasive is True
        assert match.typ == P.PROFANE_MODERATE | P.EVASIVE_MODERATE

    def test_add_word_uses_custom_type(self, lexicon: Lexicon) -> None:
        """Added words get the custom type."""
        lexicon.add_word("Banana")

        assert lexicon.match("banana").typ == TYPE_CUSTOM
        assert "BANANA" in lexicon

    def test_remove_word(self, lexicon: Lexicon) -> None:
        """Removed words and their stem forms stop matching."""
        lexicon.remove_word("damn")

        assert lexicon.match("damn") is None
        assert lexicon.match("damned") is None
        assert "damn" not in lexicon

    def test_instances_are_isolated(self) -> None:
        """Custom words never leak between lexicons."""
        first, second = Lexicon(), Lexicon()

        first.add_word("banana")

        assert second.match("banana") is None


class TestProfanityAnalyzer:
    """Test line and track classification."""

    @pytest.fixture
    def analyzer(self) -> ProfanityAnalyzer:
        return ProfanityAnalyzer()

    def test_censor(self, analyzer: ProfanityAnalyzer) -> None:
        """Bad words are masked, punctuation stays."""
        censored, typ, words = analyzer.censor("What the fuck!")

        assert censored == "What the ****!"
        assert typ == P.PROFANE_SEVERE
        assert words == frozenset({"fuck"})

    def test_clean_line_is_safe(self, analyzer: ProfanityAnalyzer) -> None:
        """Clean lines are SAFE with nothing highlighted."""
        line = analyzer.check_line(0, "Never gonna give you up")

        assert line.typ == P.SAFE
        assert line.bad_chars == ()
        assert line.is_flagged is False

    def test_already_censored_is_ignored(self, analyzer: ProfanityAnalyzer) -> None:
        """A line censored by the provider doesn't count twice."""
        _, typ, _ = analyzer.censor("what the **** is this")

        assert typ == P.SAFE

    def test_spam_does_not_trigger(self, analyzer: ProfanityAnalyzer) -> None:
        """Stretched filler words are spam, reported but never a trigger."""
        result = analyzer.check(["yeaaaaaah", "oh oh"])

        assert result.lines[0].typ == P.SPAM_MILD
        assert result.should_trigger() is False
        assert result.flagged_lines() == []

    def test_check_aggregates(self, analyzer: ProfanityAnalyzer) -> None:
        """Track type is the union of its line types, line numbers are zero based."""
        result = analyzer.check(["clean line", "you stupid bitch", "oh shit"])

        assert result.should_trigger() is True
        assert [line.no for line in result.flagged_lines()] == [1, 2]
        assert result.typ == P.PROFANE_MODERATE | P.MEAN_MODERATE
        assert result.profane_words() == {"bitch", "shit"}

    def test_check_is_deterministic(self, analyzer: ProfanityAnalyzer) -> None:
        """The same input gives an equal result every time."""
        lines = ["f.u.c.k this", "sh1t", "fine"]

        assert analyzer.check(lines) == analyzer.check(lines)
        assert ProfanityAnalyzer().check(lines) == analyzer.check(lines)

    def test_filter_allowed(self, analyzer: ProfanityAnalyzer) -> None:
        """Lines whose only trigger words are allow-listed drop out, case-insensitively."""
        result = analyzer.check(["damn it", "damn this shit"])

        remaining = result.filter_allowed({"Damn"})

        assert [line.no for line in remaining] == [1]

    def test_filter_allowed_everything(self, analyzer: ProfanityAnalyzer) -> None:
        """Allow-listing every trigger word leaves nothing to report."""
        result = analyzer.check(["damn it"])

        assert result.filter_allowed(["damn"]) == []

    def test_highlighted_default_markers(self, analyzer: ProfanityAnalyzer) -> None:
        """Bad character runs are wrapped in spoiler markers."""
        line = analyzer.check_line(0, "what the fuck")

        assert line.highlighted() == "what the ||fuck||"

    def test_highlighted_with_escape(self, analyzer: ProfanityAnalyzer) -> None:
        """Text is escaped, markers are not."""
        line = analyzer.check_line(3, "<b>shit</b> & co")

        rendered = line.highlighted("<tg-spoiler>", "</tg-spoiler>", html.escape)

        assert rendered == "&lt;b&gt;<tg-spoiler>shit</tg-spoiler>&lt;/b&gt; &amp; co"

    def test_highlighted_at_line_start(self, analyzer: ProfanityAnalyzer) -> None:
        """A bad word at the very start is wrapped too."""
        line = analyzer.check_line(0, "Shit happens")

        assert line.highlighted("[", "]") == "[Shit] happens"

    def test_evasion_marks_evasive(self, analyzer: ProfanityAnalyzer) -> None:
        """Evasion adds the evasive category to the line."""
        line = analyzer.check_line(0, "f.u.c.k you")

        assert line.typ.is_(P.EVASIVE)
        assert line.highlighted("[", "]") == "[f.u.c.k] you"

    def test_custom_word_via_analyzer(self, analyzer: ProfanityAnalyzer) -> None:
        """Words added at runtime trigger."""
        analyzer.add_word("pineapple")

        assert analyzer.check(["pineapple pizza"]).should_trigger() is True

        analyzer.remove_word("pineapple")
        assert analyzer.check(["pineapple pizza"]).should_trigger() is False
