"""Typed records indexed by the shipped providers.

Every optional attribute carries a default so that projection into an
indexed document never has to guess at missing values.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class NotebookCategory(str, Enum):
    PERSONAL = "personal"
    WORK = "work"
    PROJECT = "project"
    REFERENCE = "reference"
    ARCHIVE = "archive"


class Task(BaseModel):
    """A unit of work, optionally nested under a parent task."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: tuple[str, ...] = ()
    notebook_id: str | None = None
    created_at: datetime
    updated_at: datetime
    due_date: datetime | None = None
    completed_at: datetime | None = None
    parent_id: str | None = None
    notes: str = ""
    assignee: str = ""
    estimated_hours: float = Field(default=0.0, ge=0.0)
    actual_hours: float = Field(default=0.0, ge=0.0)

    @property
    def is_subtask(self) -> bool:
        return self.parent_id is not None


class Notebook(BaseModel):
    """A collection of notes and tasks."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    content: str = ""
    tags: tuple[str, ...] = ()
    category: NotebookCategory = NotebookCategory.PERSONAL
    created_at: datetime
    updated_at: datetime
    is_favorite: bool = False
    is_archived: bool = False
    task_count: int = Field(default=0, ge=0)
    collaborators: tuple[str, ...] = ()
    color: str = "blue"
