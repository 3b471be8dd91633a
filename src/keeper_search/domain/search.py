"""Domain models for the search contract.

Value objects are immutable (frozen=True) and carry no infrastructure
dependencies. They describe what a provider can search (field schema and
scoring configuration), what a caller asks for (query, filters, sort) and
what comes back (result items wrapped in a paging envelope).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FieldKind(str, Enum):
    """Kinds of fields a provider can expose in its schema."""

    TEXT = "text"
    SELECT = "select"
    MULTI_SELECT = "multi-select"
    DATE = "date"
    BOOLEAN = "boolean"
    NUMBER = "number"


class AnalyzerName(str, Enum):
    """How a scoring field's value is normalized before matching."""

    TEXT = "text"
    KEYWORD = "keyword"


class FieldOption(BaseModel):
    """One enumerated value of a select-like field."""

    model_config = ConfigDict(frozen=True)

    value: str | int | float | bool
    label: str
    description: str | None = None
    color: str | None = None


class FieldDescriptor(BaseModel):
    """Schema metadata for one field of a provider's records."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    type: FieldKind
    searchable: bool = False
    filterable: bool = False
    sortable: bool = False
    options: tuple[FieldOption, ...] = ()
    placeholder: str | None = None


class ScoringField(BaseModel):
    """A field that contributes a weighted hit to relevance scoring."""

    model_config = ConfigDict(frozen=True)

    name: str
    boost: float = Field(default=1.0, gt=0.0)
    analyzer: AnalyzerName = AnalyzerName.TEXT


DEFAULT_STOP_WORDS: tuple[str, ...] = (
    "the",
    "a",
    "an",
    "and",
    "or",
    "but",
    "in",
    "on",
    "at",
    "to",
    "for",
    "of",
    "with",
    "by",
    "is",
    "are",
    "was",
    "were",
)

DEFAULT_SCORING_FIELDS: tuple[ScoringField, ...] = (
    ScoringField(name="title", boost=3.0),
    ScoringField(name="content", boost=1.0),
    ScoringField(name="tags", boost=2.0, analyzer=AnalyzerName.KEYWORD),
)


class IndexConfig(BaseModel):
    """Scoring configuration fixed when a provider is constructed."""

    model_config = ConfigDict(frozen=True)

    fields: tuple[ScoringField, ...] = DEFAULT_SCORING_FIELDS
    stop_words: tuple[str, ...] = DEFAULT_STOP_WORDS
    stemming: bool = True
    case_sensitive: bool = False


class SearchFilter(BaseModel):
    """A structured predicate applied after the ranked set is built.

    ``operator`` is kept as a free string so that unknown operators reach
    the engine and are rejected there with a dedicated error.
    """

    model_config = ConfigDict(frozen=True)

    field: str
    operator: str
    value: Any = None
    enabled: bool = True
    negate: bool = False


class SearchSort(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    direction: Literal["asc", "desc"] = "asc"


class SearchQuery(BaseModel):
    """A free-text and/or structured query against one provider."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    text: str | None = None
    filters: tuple[SearchFilter, ...] = ()
    sort: SearchSort | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int | None = Field(default=None, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


class Highlight(BaseModel):
    """Marked fragments extracted from one field of a matching record."""

    model_config = ConfigDict(frozen=True)

    field: str
    fragments: tuple[str, ...]


class SearchResultItem(BaseModel):
    """One ranked record with its presentation metadata."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    item: Any
    score: float
    highlights: tuple[Highlight, ...] = ()
    snippet: str | None = None
    matched_fields: tuple[str, ...] = ()


class SearchResults(BaseModel):
    """Result envelope: one page of items plus paging and timing metadata."""

    model_config = ConfigDict(frozen=True)

    items: tuple[SearchResultItem, ...]
    total_count: int
    total_pages: int
    current_page: int
    has_more: bool
    took: float
    """Elapsed wall time in milliseconds."""
    query: SearchQuery

    @classmethod
    def empty(cls, query: SearchQuery) -> SearchResults:
        """Envelope substituted for a provider whose query failed."""
        return cls(
            items=(),
            total_count=0,
            total_pages=0,
            current_page=1,
            has_more=False,
            took=0.0,
            query=query,
        )


class ProviderFeatures(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_text: bool = True
    facets: bool = True
    highlighting: bool = True
    fuzzy_search: bool = True

    def labels(self) -> list[str]:
        """Human-readable names of the enabled features."""
        names = (
            (self.full_text, "Full Text"),
            (self.facets, "Facets"),
            (self.highlighting, "Highlighting"),
            (self.fuzzy_search, "Fuzzy Search"),
        )
        return [label for enabled, label in names if enabled]


class FacetValue(BaseModel):
    """A distinct value of a field and how many records carry it."""

    model_config = ConfigDict(frozen=True)

    value: Any
    label: str
    count: int
