"""Structured stages of the query pipeline: filter, sort and paginate.

These stages run after the ranked (or enumerated) result list is built and
operate on ``SearchResultItem`` objects. Field values are resolved through
the provider's accessor table first and fall back to a dotted-path lookup on
the record.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from functools import cmp_to_key
import math
import re
from typing import Any

from keeper_search.domain.search import SearchFilter, SearchResultItem, SearchSort
from keeper_search.exceptions import InvalidFilterOperatorError, MalformedRegexError
from keeper_search.search.analyzers import stringify_value
from keeper_search.search.fuzzy import DEFAULT_FUZZY_THRESHOLD, is_fuzzy_match


FieldAccessor = Callable[[Any], Any]
Predicate = Callable[[Any], bool]

FILTER_OPERATORS = frozenset({"contains", "equals", "startsWith", "endsWith", "regex", "fuzzy"})


def lookup_path(record: Any, path: str) -> Any:
    """Resolve a dotted path on nested mappings and attributes; missing parts yield None."""
    current = record
    for key in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(key)
        else:
            current = getattr(current, key, None)
    return current


def resolve_field(record: Any, field: str, accessors: Mapping[str, FieldAccessor] | None = None) -> Any:
    """Return the value of ``field`` for ``record``."""
    if accessors and field in accessors:
        return accessors[field](record)
    return lookup_path(record, field)


def _text(value: Any) -> str:
    return stringify_value(value).lower()


_TEXT_OPERATORS: dict[str, Callable[[str, str], bool]] = {
    "contains": lambda actual, expected: expected in actual,
    "equals": lambda actual, expected: actual == expected,
    "startsWith": lambda actual, expected: actual.startswith(expected),
    "endsWith": lambda actual, expected: actual.endswith(expected),
}


def build_predicate(search_filter: SearchFilter, *, fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD) -> Predicate:
    """Compile a filter into a predicate over a resolved field value.

    Unknown operators raise ``InvalidFilterOperatorError`` and regex values
    that do not compile raise ``MalformedRegexError``. ``negate`` is applied
    by the returned predicate.
    """
    operator = search_filter.operator
    expected = _text(search_filter.value)

    if operator in _TEXT_OPERATORS:
        compare = _TEXT_OPERATORS[operator]

        def matches(value: Any) -> bool:
            return compare(_text(value), expected)

    elif operator == "regex":
        pattern_text = stringify_value(search_filter.value)
        try:
            pattern = re.compile(pattern_text, re.IGNORECASE)
        except re.error as exc:
            raise MalformedRegexError(pattern_text, str(exc)) from exc

        def matches(value: Any) -> bool:
            return pattern.search(stringify_value(value)) is not None

    elif operator == "fuzzy":

        def matches(value: Any) -> bool:
            return is_fuzzy_match(_text(value), expected, threshold=fuzzy_threshold)

    else:
        raise InvalidFilterOperatorError(operator)

    if search_filter.negate:
        return lambda value: not matches(value)
    return matches


def apply_filters(
    items: Sequence[SearchResultItem],
    filters: Sequence[SearchFilter],
    accessors: Mapping[str, FieldAccessor] | None = None,
    *,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> list[SearchResultItem]:
    """Keep the items that satisfy every enabled filter (logical AND, in order)."""
    compiled = [
        (search_filter.field, build_predicate(search_filter, fuzzy_threshold=fuzzy_threshold))
        for search_filter in filters
        if search_filter.enabled
    ]
    if not compiled:
        return list(items)
    return [
        item
        for item in items
        if all(predicate(resolve_field(item.item, field, accessors)) for field, predicate in compiled)
    ]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _instant(value: date) -> float:
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _cmp(left: Any, right: Any) -> int:
    return (left > right) - (left < right)


def compare_values(left: Any, right: Any) -> int:
    """Three-way comparison: strings, numbers and dates natively, anything else as text."""
    if isinstance(left, str) and isinstance(right, str):
        return _cmp(left.casefold(), right.casefold()) or _cmp(left, right)
    if _is_number(left) and _is_number(right):
        return _cmp(left, right)
    if isinstance(left, date) and isinstance(right, date):
        return _cmp(_instant(left), _instant(right))
    left_text, right_text = stringify_value(left), stringify_value(right)
    return _cmp(left_text.casefold(), right_text.casefold()) or _cmp(left_text, right_text)


def sort_results(
    items: Sequence[SearchResultItem],
    sort: SearchSort,
    accessors: Mapping[str, FieldAccessor] | None = None,
) -> list[SearchResultItem]:
    """Stable sort by the resolved field value in the requested direction."""
    sign = -1 if sort.direction == "desc" else 1
    keyed = [(resolve_field(item.item, sort.field, accessors), item) for item in items]
    keyed.sort(key=cmp_to_key(lambda a, b: sign * compare_values(a[0], b[0])))
    return [item for _, item in keyed]


@dataclass(frozen=True)
class Page:
    items: list[SearchResultItem]
    total_count: int
    total_pages: int
    current_page: int
    has_more: bool


def paginate(
    items: Sequence[SearchResultItem],
    limit: int | None,
    offset: int | None,
    *,
    default_page_size: int = 20,
) -> Page:
    """Slice one page out of ``items`` and compute the paging metadata.

    Without ``limit`` every item from ``offset`` onwards is returned while
    page numbers are still computed with ``default_page_size``.
    """
    total_count = len(items)
    start = offset or 0
    end = start + limit if limit else None
    page_items = list(items[start:end])
    page_size = limit or default_page_size
    return Page(
        items=page_items,
        total_count=total_count,
        total_pages=math.ceil(total_count / page_size),
        current_page=start // page_size + 1,
        has_more=start + len(page_items) < total_count,
    )
