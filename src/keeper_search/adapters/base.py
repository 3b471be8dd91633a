"""Adapter contract and helpers shared by the entity adapters.

An adapter is a strategy object: the engine never subclasses it and only
calls the six capabilities declared on ``SearchAdapter``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
import inspect
from typing import Any, Protocol, TypeVar, Union

from keeper_search.domain.search import FacetValue, Highlight, SearchResultItem
from keeper_search.search.highlight import truncate_text
from keeper_search.search.models import IndexedDocument
from keeper_search.search.pipeline import FieldAccessor


T = TypeVar("T")

RecordSource = Callable[[], Union[Iterable[Any], Awaitable[Iterable[Any]]]]
"""Zero-argument callable returning the current collection, sync or async."""

SNIPPET_CHARS = 150
SECONDS_PER_DAY = 86400.0


class SearchAdapter(Protocol):
    """Capabilities the engine requires from one entity kind.

    ``enumerate`` must not change what ``find_original`` returns. The provider
    calls ``commit`` with the enumerated records only after every one of them
    was projected and the new index snapshot is published.
    """

    def enumerate(self) -> Iterable[Any] | Awaitable[Iterable[Any]]:  # pragma: no cover - interface definition
        ...

    def project(self, record: Any) -> IndexedDocument:  # pragma: no cover - interface definition
        ...

    def format(
        self, record: Any, score: float, highlights: Sequence[Highlight]
    ) -> SearchResultItem:  # pragma: no cover - interface definition
        ...

    def find_original(self, doc_id: str) -> Any | None:  # pragma: no cover - interface definition
        ...

    def commit(self, records: Sequence[Any]) -> None:  # pragma: no cover - interface definition
        ...

    def field_accessors(self) -> Mapping[str, FieldAccessor]:  # pragma: no cover - interface definition
        ...


async def maybe_await(value: T | Awaitable[T]) -> T:
    """Await ``value`` when it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def truncate_description(text: str | None, max_chars: int = SNIPPET_CHARS) -> str:
    if not text:
        return ""
    return truncate_text(text, max_chars)


def pick_snippet(
    highlights: Sequence[Highlight],
    preferred_fields: Sequence[str],
    fallbacks: Sequence[str | None],
    default: str,
) -> str:
    """Choose the display snippet for a result.

    The first fragment of the first preferred field that was highlighted
    wins. Otherwise the first non-empty fallback text is used, truncated,
    and ``default`` when every fallback is empty.
    """
    by_field = {highlight.field: highlight for highlight in highlights}
    for field in preferred_fields:
        highlight = by_field.get(field)
        if highlight is not None and highlight.fragments:
            return highlight.fragments[0]

    for text in fallbacks:
        if text:
            return truncate_description(text)
    return default


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from ``earlier`` to ``later``; negative when reversed."""
    return (_as_utc(later) - _as_utc(earlier)).total_seconds() / SECONDS_PER_DAY


def count_values(values: Iterable[Any], labels: Mapping[Any, str] | None = None) -> list[FacetValue]:
    """Count occurrences and order by descending count (first seen wins ties)."""
    counts = Counter(values)
    facets = [
        FacetValue(value=value, label=(labels or {}).get(value, str(value)), count=count)
        for value, count in counts.items()
    ]
    facets.sort(key=lambda facet: facet.count, reverse=True)
    return facets
