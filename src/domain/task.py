"""Task domain models and enums."""

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field


class TaskStatus(StrEnum):
    """Task completion status."""

    PENDING = "pending"
    COMPLETED = "completed"

    @property
    def toggled(self) -> "TaskStatus":
        """The opposite status, used by checkbox-style toggles."""
        return TaskStatus.PENDING if self is TaskStatus.COMPLETED else TaskStatus.COMPLETED


class StatusFilter(StrEnum):
    """Which statuses a derived view keeps."""

    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"


class SortKey(StrEnum):
    """Orderings offered by the task list."""

    NEWEST = "newest"
    OLDEST = "oldest"
    A_Z = "a-z"
    Z_A = "z-a"
    COMPLETED_FIRST = "completed-first"
    PENDING_FIRST = "pending-first"


DELETE_ACTION = "delete"

# A bulk operation either moves tasks to a status or deletes them
BulkAction = TaskStatus | Literal["delete"]


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID assigned by the document store")
    title: str = Field(..., description="Trimmed task title")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Completion status")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED
