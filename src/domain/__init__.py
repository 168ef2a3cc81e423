"""Domain models and DTOs."""

from src.domain.create_models import TaskCreate
from src.domain.task import DELETE_ACTION, BulkAction, SortKey, StatusFilter, Task, TaskStatus
from src.domain.update_models import TaskUpdate


__all__ = [
    "DELETE_ACTION",
    "BulkAction",
    "SortKey",
    "StatusFilter",
    "Task",
    "TaskCreate",
    "TaskStatus",
    "TaskUpdate",
]
