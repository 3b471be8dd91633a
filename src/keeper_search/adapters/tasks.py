"""Tasks adapter: projection, boost rules, facets and suggestions for tasks."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from operator import attrgetter

from keeper_search.adapters.base import RecordSource, count_values, days_between, maybe_await, pick_snippet
from keeper_search.config import Settings
from keeper_search.domain.records import Task, TaskPriority, TaskStatus
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
    SearchResultItem,
)
from keeper_search.provider import SearchProvider
from keeper_search.search.models import IndexedDocument, clamp_boost
from keeper_search.search.pipeline import FieldAccessor


PRIORITY_BONUS: Mapping[TaskPriority, float] = {
    TaskPriority.URGENT: 0.5,
    TaskPriority.HIGH: 0.3,
    TaskPriority.MEDIUM: 0.1,
    TaskPriority.LOW: 0.0,
}

STATUS_LABELS: Mapping[TaskStatus, str] = {
    TaskStatus.PENDING: "Pending",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.COMPLETED: "Completed",
    TaskStatus.CANCELLED: "Cancelled",
}

PRIORITY_LABELS: Mapping[TaskPriority, str] = {
    TaskPriority.LOW: "Low",
    TaskPriority.MEDIUM: "Medium",
    TaskPriority.HIGH: "High",
    TaskPriority.URGENT: "Urgent",
}

PRIORITY_ORDER = (TaskPriority.URGENT, TaskPriority.HIGH, TaskPriority.MEDIUM, TaskPriority.LOW)

STATUS_SUGGESTIONS = ("pending", "in progress", "completed", "cancelled")
PRIORITY_SUGGESTIONS = ("low", "medium", "high", "urgent")

TASK_INDEX_CONFIG = IndexConfig(
    fields=(
        ScoringField(name="title", boost=3.0),
        ScoringField(name="description", boost=2.0),
        ScoringField(name="tags", boost=2.5, analyzer=AnalyzerName.KEYWORD),
        ScoringField(name="notes", boost=1.0),
    ),
)

TASK_FIELDS: tuple[FieldDescriptor, ...] = (
    FieldDescriptor(
        key="title",
        label="Title",
        type=FieldKind.TEXT,
        searchable=True,
        filterable=True,
        sortable=True,
        placeholder="Search by title...",
    ),
    FieldDescriptor(
        key="description",
        label="Description",
        type=FieldKind.TEXT,
        searchable=True,
        filterable=True,
        placeholder="Search by description...",
    ),
    FieldDescriptor(
        key="status",
        label="Status",
        type=FieldKind.SELECT,
        filterable=True,
        sortable=True,
        options=(
            FieldOption(value="pending", label="Pending", color="gray"),
            FieldOption(value="in_progress", label="In Progress", color="blue"),
            FieldOption(value="completed", label="Completed", color="green"),
            FieldOption(value="cancelled", label="Cancelled", color="red"),
        ),
    ),
    FieldDescriptor(
        key="priority",
        label="Priority",
        type=FieldKind.SELECT,
        filterable=True,
        sortable=True,
        options=(
            FieldOption(value="low", label="Low", color="gray"),
            FieldOption(value="medium", label="Medium", color="yellow"),
            FieldOption(value="high", label="High", color="orange"),
            FieldOption(value="urgent", label="Urgent", color="red"),
        ),
    ),
    FieldDescriptor(
        key="tags",
        label="Tags",
        type=FieldKind.MULTI_SELECT,
        searchable=True,
        filterable=True,
        placeholder="Filter by tags...",
    ),
    FieldDescriptor(key="notebook_id", label="Notebook", type=FieldKind.SELECT, filterable=True, sortable=True),
    FieldDescriptor(key="created_at", label="Created Date", type=FieldKind.DATE, filterable=True, sortable=True),
    FieldDescriptor(key="updated_at", label="Updated Date", type=FieldKind.DATE, filterable=True, sortable=True),
    FieldDescriptor(key="due_date", label="Due Date", type=FieldKind.DATE, filterable=True, sortable=True),
    FieldDescriptor(key="completed_at", label="Completed Date", type=FieldKind.DATE, filterable=True, sortable=True),
    FieldDescriptor(key="is_subtask", label="Is Subtask", type=FieldKind.BOOLEAN, filterable=True),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def priority_boost(priority: TaskPriority) -> float:
    return PRIORITY_BONUS.get(priority, 0.0)


def recency_boost(updated_at: datetime, now: datetime) -> float:
    """+0.2 when updated within a day, +0.1 within a week."""
    age = days_between(updated_at, now)
    if age < 1:
        return 0.2
    if age < 7:
        return 0.1
    return 0.0


def due_soon_boost(due_date: datetime | None, now: datetime) -> float:
    """+0.3 for tasks due strictly within the next seven days."""
    if due_date is None:
        return 0.0
    days_until_due = days_between(now, due_date)
    if 0 < days_until_due < 7:
        return 0.3
    return 0.0


def completion_factor(status: TaskStatus) -> float:
    """Completed tasks stay searchable but rank lower."""
    return 0.7 if status is TaskStatus.COMPLETED else 1.0


def task_boost(task: Task, now: datetime) -> float:
    boost = 1.0
    boost += priority_boost(task.priority)
    boost += recency_boost(task.updated_at, now)
    boost += due_soon_boost(task.due_date, now)
    boost *= completion_factor(task.status)
    return clamp_boost(boost)


def task_content(task: Task) -> str:
    return " ".join([task.title, task.description, " ".join(task.tags), task.notes])


def task_snippet(task: Task, highlights: Sequence[Highlight]) -> str:
    return pick_snippet(highlights, ("title", "description"), (task.description,), task.title)


_ACCESSORS: Mapping[str, FieldAccessor] = {
    name: attrgetter(name)
    for name in (
        "id",
        "title",
        "description",
        "status",
        "priority",
        "tags",
        "notebook_id",
        "created_at",
        "updated_at",
        "due_date",
        "completed_at",
        "is_subtask",
        "notes",
        "assignee",
        "estimated_hours",
        "actual_hours",
        "parent_id",
    )
}


class TasksAdapter:
    """Indexes the tasks returned by ``source``."""

    type_name = "task"

    def __init__(self, source: RecordSource, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._source = source
        self._clock = clock
        self._tasks: dict[str, Task] = {}

    async def enumerate(self) -> list[Task]:
        return list(await maybe_await(self._source()))

    def commit(self, tasks: Sequence[Task]) -> None:
        self._tasks = {task.id: task for task in tasks}

    def records(self) -> list[Task]:
        """Tasks behind the current index."""
        return list(self._tasks.values())

    def project(self, task: Task) -> IndexedDocument:
        return IndexedDocument(
            id=task.id,
            content=task_content(task),
            fields={
                "title": task.title,
                "description": task.description,
                "status": task.status.value,
                "priority": task.priority.value,
                "tags": list(task.tags),
                "notebook_id": task.notebook_id,
                "created_at": task.created_at,
                "updated_at": task.updated_at,
                "due_date": task.due_date,
                "completed_at": task.completed_at,
                "is_subtask": task.is_subtask,
                "notes": task.notes,
                "assignee": task.assignee,
                "estimated_hours": task.estimated_hours,
                "actual_hours": task.actual_hours,
            },
            boost=task_boost(task, self._clock()),
            type=self.type_name,
        )

    def format(self, task: Task, score: float, highlights: Sequence[Highlight]) -> SearchResultItem:
        return SearchResultItem(
            item=task,
            score=score,
            highlights=tuple(highlights),
            snippet=task_snippet(task, highlights),
            matched_fields=tuple(highlight.field for highlight in highlights),
        )

    def find_original(self, doc_id: str) -> Task | None:
        return self._tasks.get(doc_id)

    def field_accessors(self) -> Mapping[str, FieldAccessor]:
        return _ACCESSORS


def tag_options(tasks: Iterable[Task]) -> list[FacetValue]:
    return count_values(tag for task in tasks for tag in task.tags)


def status_distribution(tasks: Iterable[Task]) -> list[FacetValue]:
    return count_values((task.status for task in tasks), STATUS_LABELS)


def priority_distribution(tasks: Iterable[Task]) -> list[FacetValue]:
    """Priority counts ordered urgent, high, medium, low."""
    facets = count_values((task.priority for task in tasks), PRIORITY_LABELS)
    facets.sort(key=lambda facet: PRIORITY_ORDER.index(facet.value))
    return facets


async def task_suggestions(provider: SearchProvider, text: str, limit: int = 10) -> list[str]:
    """Status, priority and tag suggestions followed by indexed tokens, without repeats."""
    needle = text.lower()
    tags = tag_options(provider.adapter.records())  # type: ignore[attr-defined]
    suggestions = [
        *(status for status in STATUS_SUGGESTIONS if needle in status),
        *(priority for priority in PRIORITY_SUGGESTIONS if needle in priority),
        *[facet.label for facet in tags if needle in facet.label.lower()][:5],
        *await provider.suggest(text),
    ]
    return list(dict.fromkeys(suggestions))[:limit]


def build_tasks_provider(source: RecordSource, settings: Settings | None = None) -> SearchProvider:
    """Tasks provider wired with the engine options from ``settings``."""
    settings = settings or Settings()
    return SearchProvider(
        id="tasks",
        name="Tasks",
        description="Search and filter tasks",
        fields=TASK_FIELDS,
        adapter=TasksAdapter(source),
        index_config=TASK_INDEX_CONFIG,
        features=ProviderFeatures(),
        scoring_options=settings.scoring_options(),
        highlight_options=settings.highlight_options(),
        default_page_size=settings.default_page_size,
        suggestion_limit=settings.suggestion_limit,
    )
