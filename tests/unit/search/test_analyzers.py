"""Unit tests for analyzers and value stringification."""

from datetime import date, datetime, timezone

import pytest

from keeper_search.domain.records import TaskStatus
from keeper_search.domain.search import DEFAULT_STOP_WORDS, AnalyzerName
from keeper_search.search.analyzers import (
    KeywordAnalyzer,
    StopFilter,
    TextAnalyzer,
    Token,
    WordCharFilter,
    get_analyzer,
    stringify_value,
)


@pytest.mark.unit
class TestTextAnalyzer:
    def test_terms_lowercase_strip_punctuation_and_stop_words(self):
        analyzer = TextAnalyzer()
        assert analyzer.terms("The Quick, brown fox!") == ["quick", "brown", "fox"]

    def test_only_stop_words_yield_no_terms(self):
        analyzer = TextAnalyzer()
        assert analyzer.terms(" ".join(DEFAULT_STOP_WORDS)) == []

    def test_punctuation_only_tokens_are_dropped(self):
        analyzer = TextAnalyzer()
        assert analyzer.terms("... -- !!") == []

    def test_stop_words_match_regardless_of_case_when_case_sensitive(self):
        analyzer = TextAnalyzer(case_sensitive=True)
        assert analyzer.terms("The Plan") == ["Plan"]
        assert analyzer.normalize("MiXeD") == "MiXeD"

    def test_custom_stop_words_replace_defaults(self):
        analyzer = TextAnalyzer(stopwords=["draft"])
        assert analyzer.terms("the draft plan") == ["the", "plan"]

    def test_positions_are_renumbered_after_filtering(self):
        tokens = TextAnalyzer()("a report on the budget")
        assert [(token.text, token.position) for token in tokens] == [("report", 0), ("budget", 1)]

    def test_repeated_calls_are_deterministic(self):
        analyzer = TextAnalyzer()
        text = "Review: Q3 budget & hiring-plan"
        assert analyzer.terms(text) == analyzer.terms(text) == ["review", "q3", "budget", "hiringplan"]


@pytest.mark.unit
class TestKeywordAnalyzer:
    def test_whole_value_is_one_lowercased_token(self):
        assert KeywordAnalyzer().terms("Front End") == ["front end"]

    def test_empty_text_returns_empty(self):
        assert KeywordAnalyzer()("") == []


@pytest.mark.unit
def test_word_char_filter_drops_empty_tokens():
    tokens = [Token("(", 0, 0, 1), Token("ok.", 1, 2, 5)]
    assert [token.text for token in WordCharFilter()(tokens)] == ["ok"]


@pytest.mark.unit
def test_stop_filter_defaults_to_builtin_list():
    tokens = [Token("and", 0, 0, 3), Token("notes", 1, 4, 9)]
    assert [token.text for token in StopFilter()(tokens)] == ["notes"]


@pytest.mark.unit
class TestGetAnalyzer:
    def test_resolves_keyword_by_enum_and_name(self):
        assert isinstance(get_analyzer(AnalyzerName.KEYWORD), KeywordAnalyzer)
        assert isinstance(get_analyzer("KEYWORD"), KeywordAnalyzer)

    def test_defaults_to_text(self):
        assert isinstance(get_analyzer(None), TextAnalyzer)

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="Unknown analyzer"):
            get_analyzer("stemmed")


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, ""),
        ("", ""),
        (True, "true"),
        (False, "false"),
        (3.0, "3"),
        (2.5, "2.5"),
        (["a", "b"], "a,b"),
        (TaskStatus.COMPLETED, "completed"),
        (date(2024, 1, 2), "2024-01-02"),
        (datetime(2024, 1, 2, 3, 4, tzinfo=timezone.utc), "2024-01-02T03:04:00+00:00"),
    ],
)
def test_stringify_value(value, expected):
    assert stringify_value(value) == expected
