"""Analyzer utilities for the in-memory search engine.

Text is turned into query/content terms by a small composable pipeline: a
whitespace tokenizer followed by token filters (case folding, non-word
character stripping, stop-word removal). Analyzers are pure: the same input
always yields the same terms.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
import re
from typing import Any, Protocol

from keeper_search.domain.search import DEFAULT_STOP_WORDS, AnalyzerName


@dataclass
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int


class Analyzer(Protocol):
    """Protocol implemented by analyzers."""

    def normalize(self, text: str) -> str:  # pragma: no cover - interface definition
        ...

    def __call__(self, text: str) -> list[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    """Protocol implemented by token filters."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class WhitespaceTokenizer:
    """Splits text on runs of whitespace."""

    _PATTERN = re.compile(r"\S+")

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self._PATTERN.finditer(text)):
            yield Token(
                text=match.group(0),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )


class LowercaseFilter:
    """Filter that lowercases token text."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text.islower():
                yield token
            else:
                yield replace(token, text=token.text.lower())


class WordCharFilter:
    """Strips every non-word character and drops tokens left empty."""

    _NON_WORD = re.compile(r"[^\w]", re.UNICODE)

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            stripped = self._NON_WORD.sub("", token.text)
            if stripped:
                yield replace(token, text=stripped)


class StopFilter:
    """Removes stopwords from the stream."""

    def __init__(self, stopwords: Sequence[str] | None = None) -> None:
        vocab = stopwords if stopwords is not None else DEFAULT_STOP_WORDS
        self.stopwords = frozenset(word.lower() for word in vocab)

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text.lower() not in self.stopwords:
                yield token


class AnalyzerPipeline:
    """Composable analyzer pipeline (tokenizer + filters)."""

    def __init__(self, tokenizer: Callable[[str], Iterator[Token]], filters: Sequence[TokenFilter] | None = None):
        self.tokenizer = tokenizer
        self.filters = list(filters or [])

    def __call__(self, text: str) -> list[Token]:
        stream: Iterable[Token] = self.tokenizer(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        tokens = list(stream)
        for idx, token in enumerate(tokens):  # normalize positions post-filtering
            token.position = idx
        return tokens


class TextAnalyzer:
    """Default analyzer for free text: case folding plus stop-word removal."""

    def __init__(self, *, stopwords: Sequence[str] | None = None, case_sensitive: bool = False) -> None:
        self.case_sensitive = case_sensitive
        filters: list[TokenFilter] = []
        if not case_sensitive:
            filters.append(LowercaseFilter())
        filters.extend([WordCharFilter(), StopFilter(stopwords)])
        self.pipeline = AnalyzerPipeline(WhitespaceTokenizer(), filters)

    def normalize(self, text: str) -> str:
        return text if self.case_sensitive else text.lower()

    def __call__(self, text: str) -> list[Token]:
        return self.pipeline(text)

    def terms(self, text: str) -> list[str]:
        """Normalize ``text`` and return its ordered query terms."""
        return [token.text for token in self(self.normalize(text))]


class KeywordAnalyzer:
    """Analyzer that treats the entire input as a single case-folded token."""

    def normalize(self, text: str) -> str:
        return text.lower()

    def __call__(self, text: str) -> list[Token]:
        if not text:
            return []
        return [Token(text=text, position=0, start_char=0, end_char=len(text))]

    def terms(self, text: str) -> list[str]:
        return [token.text for token in self(self.normalize(text))]


def get_analyzer(
    name: AnalyzerName | str | None,
    *,
    stopwords: Sequence[str] | None = None,
    case_sensitive: bool = False,
) -> TextAnalyzer | KeywordAnalyzer:
    """Return analyzer by name, defaulting to the text analyzer."""

    if name is None:
        return TextAnalyzer(stopwords=stopwords, case_sensitive=case_sensitive)
    try:
        resolved = AnalyzerName(name.lower() if isinstance(name, str) else name)
    except ValueError:
        msg = f"Unknown analyzer '{name}'. Available: {sorted(member.value for member in AnalyzerName)}"
        raise ValueError(msg) from None
    if resolved is AnalyzerName.KEYWORD:
        return KeywordAnalyzer()
    return TextAnalyzer(stopwords=stopwords, case_sensitive=case_sensitive)


def stringify_value(value: Any) -> str:
    """Render a raw field value as the text used for matching and comparison.

    Missing values render as an empty string, sequences are joined with
    commas, dates use ISO-8601 and enums use their value.
    """
    if value is None:
        return ""
    if isinstance(value, Enum):
        return stringify_value(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(stringify_value(element) for element in value)
    return str(value)
