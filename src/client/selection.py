"""Task selection for bulk operations."""

from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel

from src.domain.task import DELETE_ACTION, BulkAction, Task, TaskStatus


class SelectionState(StrEnum):
    """Tri-state of a "select all" control over the visible tasks."""

    NONE = "none"
    SOME = "some"
    ALL = "all"


class BulkValidation(BaseModel):
    """Whether a bulk action is worth running over the selection."""

    is_valid: bool
    message: str = ""


class TaskSelection:
    """Ordered set of selected task ids, owned by one session."""

    def __init__(self, task_ids: Iterable[str] = ()) -> None:
        self._ids: dict[str, None] = dict.fromkeys(task_ids)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def ids(self) -> list[str]:
        """Selected ids in the order they were selected."""
        return list(self._ids)

    @property
    def count(self) -> int:
        return len(self._ids)

    def contains(self, task_id: str) -> bool:
        return task_id in self._ids

    def select(self, task_id: str) -> None:
        self._ids[task_id] = None

    def deselect(self, task_id: str) -> None:
        self._ids.pop(task_id, None)

    def toggle(self, task_id: str) -> bool:
        """Flip one id and return whether it is now selected."""
        if task_id in self._ids:
            self.deselect(task_id)
            return False
        self.select(task_id)
        return True

    def select_all(self, task_ids: Iterable[str]) -> None:
        for task_id in task_ids:
            self.select(task_id)

    def clear(self) -> None:
        self._ids.clear()

    def retain(self, task_ids: Iterable[str]) -> None:
        """Drop selected ids that are no longer in task_ids (after deletes or a reload)."""
        keep = set(task_ids)
        self._ids = {task_id: None for task_id in self._ids if task_id in keep}

    def state(self, visible_ids: Iterable[str]) -> SelectionState:
        """State of the select-all control for the tasks currently shown.

        Compares the selection size with the number of visible tasks, so a
        selection made before filtering still reads as "all" when it covers as
        many tasks as are shown.
        """
        visible_count = len(list(visible_ids))
        if visible_count == 0 or not self._ids:
            return SelectionState.NONE
        if len(self._ids) == visible_count:
            return SelectionState.ALL
        return SelectionState.SOME


def validate_bulk_operation(action: BulkAction, tasks: Iterable[Task], selected_ids: Iterable[str]) -> BulkValidation:
    """Reject an empty selection, or a status change every selected task already has."""
    selected = set(selected_ids)
    if not selected:
        return BulkValidation(is_valid=False, message="Please select at least one task")

    if action != DELETE_ACTION:
        target = TaskStatus(action)
        already = sum(1 for task in tasks if task.id in selected and task.status is target)
        if already == len(selected):
            return BulkValidation(is_valid=False, message=f"All selected tasks are already {target.value}")

    return BulkValidation(is_valid=True)


def confirmation_message(action: BulkAction, count: int) -> str:
    """Question to ask before running a bulk action over count tasks."""
    task_word = "task" if count == 1 else "tasks"
    if action == DELETE_ACTION:
        return f"Are you sure you want to delete {count} {task_word}? This action cannot be undone."
    if action == TaskStatus.COMPLETED:
        return f"Mark {count} {task_word} as completed?"
    if action == TaskStatus.PENDING:
        return f"Mark {count} {task_word} as pending?"
    return f"Perform bulk operation on {count} {task_word}?"
