"""Highlight extraction for search result snippets.

Every case-insensitive occurrence of a query term in a scoring field is
wrapped in open/close markers, and short fragments are cut around each
marked span: the marked text plus one unmarked segment of context on
either side. Highlighting is presentational only and never touches the
indexed document.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import re

from keeper_search.domain.search import Highlight, IndexConfig
from keeper_search.search.analyzers import stringify_value
from keeper_search.search.models import IndexedDocument


ELLIPSIS = "..."


@dataclass(frozen=True)
class HighlightOptions:
    open_marker: str = "<mark>"
    close_marker: str = "</mark>"
    max_fragments: int = 3
    fallback_chars: int = 150


def truncate_text(text: str, max_chars: int = 150) -> str:
    """Shorten ``text`` to at most ``max_chars`` characters, ellipsis included."""
    if len(text) <= max_chars:
        return text
    return text[: max(0, max_chars - len(ELLIPSIS))] + ELLIPSIS


def find_term_spans(text: str, terms: Sequence[str]) -> list[tuple[int, int]]:
    """Return merged, sorted ``(start, end)`` spans of every term occurrence."""
    spans: list[tuple[int, int]] = []
    for term in terms:
        if not term:
            continue
        pattern = re.compile(re.escape(term), re.IGNORECASE)
        spans.extend((match.start(), match.end()) for match in pattern.finditer(text))

    if not spans:
        return []

    spans.sort()
    merged = [spans[0]]
    for start, end in spans[1:]:
        last_start, last_end = merged[-1]
        if start <= last_end:
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def mark_terms(text: str, terms: Sequence[str], options: HighlightOptions | None = None) -> str:
    """Wrap every occurrence of every term in the highlight markers."""
    opts = options or HighlightOptions()
    result: list[str] = []
    cursor = 0
    for start, end in find_term_spans(text, terms):
        result.append(text[cursor:start])
        result.append(f"{opts.open_marker}{text[start:end]}{opts.close_marker}")
        cursor = end
    result.append(text[cursor:])
    return "".join(result)


def extract_fragments(marked: str, options: HighlightOptions | None = None) -> list[str]:
    """Cut fragments around each marked span of an already marked text."""
    opts = options or HighlightOptions()
    splitter = re.compile(f"({re.escape(opts.open_marker)}.*?{re.escape(opts.close_marker)})", re.DOTALL)
    segments = splitter.split(marked)

    fragments: list[str] = []
    for idx, segment in enumerate(segments):
        if not segment.startswith(opts.open_marker):
            continue
        start = max(0, idx - 1)
        end = min(len(segments), idx + 2)
        fragment = "".join(segments[start:end]).strip()
        if fragment:
            fragments.append(fragment)
        if len(fragments) >= opts.max_fragments:
            break
    return fragments


def highlight_text(text: str, terms: Sequence[str], options: HighlightOptions | None = None) -> list[str]:
    """Return the fragments for one field value, or an empty list when nothing matched."""
    opts = options or HighlightOptions()
    if not text or not find_term_spans(text, terms):
        return []

    fragments = extract_fragments(mark_terms(text, terms, opts), opts)
    if fragments:
        return fragments
    return [text[: opts.fallback_chars] + ELLIPSIS]


class Highlighter:
    """Produces per-field highlights for the provider's scoring fields."""

    def __init__(self, config: IndexConfig, options: HighlightOptions | None = None) -> None:
        self.config = config
        self.options = options or HighlightOptions()

    def highlight(self, document: IndexedDocument, terms: Sequence[str]) -> list[Highlight]:
        highlights: list[Highlight] = []
        for scoring_field in self.config.fields:
            text = stringify_value(document.fields.get(scoring_field.name))
            fragments = highlight_text(text, terms, self.options)
            if fragments:
                highlights.append(Highlight(field=scoring_field.name, fragments=tuple(fragments)))
        return highlights
