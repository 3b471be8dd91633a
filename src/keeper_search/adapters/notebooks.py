"""Notebooks adapter."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from operator import attrgetter

from keeper_search.adapters.base import RecordSource, count_values, days_between, maybe_await, pick_snippet
from keeper_search.config import Settings
from keeper_search.domain.records import Notebook, NotebookCategory
from keeper_search.domain.search import (
    AnalyzerName,
    FacetValue,
    FieldDescriptor,
    FieldKind,
    FieldOption,
    Highlight,
    IndexConfig,
    ProviderFeatures,
    ScoringField,
    SearchFilter,
    SearchQuery,
    SearchResultItem,
)
from keeper_search.provider import SearchProvider
from keeper_search.search.models import IndexedDocument, clamp_boost
from keeper_search.search.pipeline import FieldAccessor


CATEGORY_LABELS: Mapping[NotebookCategory, str] = {
    NotebookCategory.PERSONAL: "Personal",
    NotebookCategory.WORK: "Work",
    NotebookCategory.PROJECT: "Project",
    NotebookCategory.REFERENCE: "Reference",
    NotebookCategory.ARCHIVE: "Archive",
}

CATEGORY_BONUS: Mapping[NotebookCategory, float] = {
    NotebookCategory.WORK: 0.1,
    NotebookCategory.PROJECT: 0.1,
    NotebookCategory.REFERENCE: 0.05,
}

# (bucket, label, inclusive upper bound in days)
ACTIVITY_BUCKETS: tuple[tuple[str, str, float], ...] = (
    ("today", "Updated Today", 1),
    ("week", "This Week", 7),
    ("month", "This Month", 30),
    ("quarter", "This Quarter", 90),
    ("older", "Older", float("inf")),
)

SIMILAR_QUERY_TERMS = 10

NOTEBOOK_INDEX_CONFIG = IndexConfig(
    fields=(
        ScoringField(name="title", boost=3.0),
        ScoringField(name="description", boost=2.0),
        ScoringField(name="content", boost=1.5),
        ScoringField(name="tags", boost=2.5, analyzer=AnalyzerName.KEYWORD),
    ),
)

NOTEBOOK_FIELDS: tuple[FieldDescriptor, ...] = (
    FieldDescriptor(
        key="title",
        label="Title",
        type=FieldKind.TEXT,
        searchable=True,
        filterable=True,
        sortable=True,
        placeholder="Search by title...",
    ),
    FieldDescriptor(key="description", label="Description", type=FieldKind.TEXT, searchable=True, filterable=True),
    FieldDescriptor(key="content", label="Content", type=FieldKind.TEXT, searchable=True, filterable=True),
    FieldDescriptor(
        key="category",
        label="Category",
        type=FieldKind.SELECT,
        filterable=True,
        sortable=True,
        options=tuple(
            FieldOption(value=category.value, label=label) for category, label in CATEGORY_LABELS.items()
        ),
    ),
    FieldDescriptor(key="tags", label="Tags", type=FieldKind.MULTI_SELECT, searchable=True, filterable=True),
    FieldDescriptor(key="created_at", label="Created Date", type=FieldKind.DATE, filterable=True, sortable=True),
    FieldDescriptor(key="updated_at", label="Updated Date", type=FieldKind.DATE, filterable=True, sortable=True),
    FieldDescriptor(key="is_favorite", label="Favorite", type=FieldKind.BOOLEAN, filterable=True),
    FieldDescriptor(key="is_archived", label="Archived", type=FieldKind.BOOLEAN, filterable=True),
    FieldDescriptor(key="task_count", label="Task Count", type=FieldKind.NUMBER, filterable=True, sortable=True),
    FieldDescriptor(key="collaborators", label="Collaborators", type=FieldKind.MULTI_SELECT, filterable=True),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def favorite_boost(is_favorite: bool) -> float:
    return 0.3 if is_favorite else 0.0


def recency_boost(updated_at: datetime, now: datetime) -> float:
    age = days_between(updated_at, now)
    if age < 1:
        return 0.2
    if age < 7:
        return 0.1
    return 0.0


def activity_boost(task_count: int) -> float:
    """Notebooks holding many tasks are treated as active projects."""
    if task_count > 10:
        return 0.2
    if task_count > 5:
        return 0.1
    return 0.0


def collaboration_boost(collaborators: Sequence[str]) -> float:
    return 0.15 if collaborators else 0.0


def archive_factor(is_archived: bool) -> float:
    return 0.5 if is_archived else 1.0


def category_boost(category: NotebookCategory) -> float:
    return CATEGORY_BONUS.get(category, 0.0)


def notebook_boost(notebook: Notebook, now: datetime) -> float:
    """Static boost; the archive penalty applies before the category bonus."""
    boost = 1.0
    boost += favorite_boost(notebook.is_favorite)
    boost += recency_boost(notebook.updated_at, now)
    boost += activity_boost(notebook.task_count)
    boost += collaboration_boost(notebook.collaborators)
    boost *= archive_factor(notebook.is_archived)
    boost += category_boost(notebook.category)
    return clamp_boost(boost)


def notebook_content(notebook: Notebook) -> str:
    return " ".join(
        [notebook.title, notebook.description, notebook.content, " ".join(notebook.tags), *notebook.collaborators]
    )


def notebook_snippet(notebook: Notebook, highlights: Sequence[Highlight]) -> str:
    return pick_snippet(
        highlights,
        ("title", "description", "content"),
        (notebook.description, notebook.content),
        notebook.title,
    )


_ACCESSORS: Mapping[str, FieldAccessor] = {
    name: attrgetter(name)
    for name in (
        "id",
        "title",
        "description",
        "content",
        "tags",
        "category",
        "created_at",
        "updated_at",
        "is_favorite",
        "is_archived",
        "task_count",
        "collaborators",
        "color",
    )
}


class NotebooksAdapter:
    type_name = "notebook"

    def __init__(self, source: RecordSource, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._source = source
        self._clock = clock
        self._notebooks: dict[str, Notebook] = {}

    async def enumerate(self) -> list[Notebook]:
        return list(await maybe_await(self._source()))

    def commit(self, notebooks: Sequence[Notebook]) -> None:
        self._notebooks = {notebook.id: notebook for notebook in notebooks}

    def records(self) -> list[Notebook]:
        return list(self._notebooks.values())

    def project(self, notebook: Notebook) -> IndexedDocument:
        return IndexedDocument(
            id=notebook.id,
            content=notebook_content(notebook),
            fields={
                "title": notebook.title,
                "description": notebook.description,
                "content": notebook.content,
                "tags": list(notebook.tags),
                "category": notebook.category.value,
                "created_at": notebook.created_at,
                "updated_at": notebook.updated_at,
                "is_favorite": notebook.is_favorite,
                "is_archived": notebook.is_archived,
                "task_count": notebook.task_count,
                "collaborators": list(notebook.collaborators),
                "color": notebook.color,
            },
            boost=notebook_boost(notebook, self._clock()),
            type=self.type_name,
        )

    def format(self, notebook: Notebook, score: float, highlights: Sequence[Highlight]) -> SearchResultItem:
        return SearchResultItem(
            item=notebook,
            score=score,
            highlights=tuple(highlights),
            snippet=notebook_snippet(notebook, highlights),
            matched_fields=tuple(highlight.field for highlight in highlights),
        )

    def find_original(self, doc_id: str) -> Notebook | None:
        return self._notebooks.get(doc_id)

    def field_accessors(self) -> Mapping[str, FieldAccessor]:
        return _ACCESSORS


def tag_options(notebooks: Iterable[Notebook]) -> list[FacetValue]:
    return count_values(tag for notebook in notebooks for tag in notebook.tags)


def category_distribution(notebooks: Iterable[Notebook]) -> list[FacetValue]:
    return count_values((notebook.category for notebook in notebooks), CATEGORY_LABELS)


def collaborator_options(notebooks: Iterable[Notebook]) -> list[FacetValue]:
    return count_values(person for notebook in notebooks for person in notebook.collaborators)


def activity_distribution(notebooks: Iterable[Notebook], now: datetime | None = None) -> list[FacetValue]:
    """Bucket notebooks by days since their last update; empty buckets are dropped."""
    now = now or _utcnow()
    counts = {bucket: 0 for bucket, _, _ in ACTIVITY_BUCKETS}
    for notebook in notebooks:
        age = days_between(notebook.updated_at, now)
        for bucket, _, upper in ACTIVITY_BUCKETS:
            if age <= upper:
                counts[bucket] += 1
                break
    return [
        FacetValue(value=bucket, label=label, count=counts[bucket])
        for bucket, label, _ in ACTIVITY_BUCKETS
        if counts[bucket]
    ]


async def notebook_suggestions(provider: SearchProvider, text: str, limit: int = 10) -> list[str]:
    """Category, tag and collaborator suggestions followed by indexed tokens."""
    needle = text.lower()
    notebooks = provider.adapter.records()  # type: ignore[attr-defined]
    suggestions = [
        *(category.value for category in NotebookCategory if needle in category.value),
        *[facet.label for facet in tag_options(notebooks) if needle in facet.label.lower()][:5],
        *[facet.label for facet in collaborator_options(notebooks) if needle in facet.label.lower()][:3],
        *await provider.suggest(text),
    ]
    return list(dict.fromkeys(suggestions))[:limit]


async def search_similar(provider: SearchProvider, notebook_id: str, limit: int = 5) -> list[SearchResultItem]:
    """Notebooks whose text overlaps the first content terms of ``notebook_id``."""
    if not provider.index_size:
        await provider.build_index()
    source = provider.adapter.find_original(notebook_id)
    if source is None or not source.content:
        return []

    terms = provider.tokenize(source.content)[:SIMILAR_QUERY_TERMS]
    if not terms:
        return []
    query = SearchQuery(
        id=f"similar-{notebook_id}",
        text=" ".join(terms),
        filters=(SearchFilter(field="id", operator="equals", value=notebook_id, negate=True),),
        limit=limit,
    )
    results = await provider.search(query)
    return list(results.items)


def build_notebooks_provider(source: RecordSource, settings: Settings | None = None) -> SearchProvider:
    settings = settings or Settings()
    return SearchProvider(
        id="notebooks",
        name="Notebooks",
        description="Search and filter notebooks",
        fields=NOTEBOOK_FIELDS,
        adapter=NotebooksAdapter(source),
        index_config=NOTEBOOK_INDEX_CONFIG,
        features=ProviderFeatures(),
        scoring_options=settings.scoring_options(),
        highlight_options=settings.highlight_options(),
        default_page_size=settings.default_page_size,
        suggestion_limit=settings.suggestion_limit,
    )
