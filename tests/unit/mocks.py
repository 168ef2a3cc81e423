"""In-memory fakes of the task API and cache backends for unit testing."""

import asyncio
from collections import defaultdict
from datetime import UTC, datetime
from typing import Any

from src.core.db_client import generate_record_id
from src.core.errors import ConflictError, NotFoundError, StorageError, TaskError
from src.core.validation import DUPLICATE_TITLE_MESSAGE, normalize_title
from src.domain.task import Task, TaskStatus


class FakeTaskApi:
    """Pure Python stand-in for TaskApiClient.

    Holds tasks like the remote store does, records every call, and can be
    told to fail an operation (optionally only for one task id).
    """

    def __init__(self, tasks: list[Task] | None = None):
        """Initialize with tasks in remote (newest first) order."""
        self.tasks: dict[str, Task] = {task.id: task for task in tasks or []}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._failures: dict[str, list[TaskError]] = defaultdict(list)
        self._id_failures: dict[tuple[str, str], TaskError] = {}

    def fail(self, operation: str, error: TaskError, *, times: int = 1) -> None:
        """Make the next `times` calls of operation raise error."""
        self._failures[operation].extend([error] * times)

    def fail_for(self, operation: str, task_id: str, error: TaskError) -> None:
        """Make every call of operation for task_id raise error."""
        self._id_failures[(operation, task_id)] = error

    def calls_for(self, operation: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == operation]

    async def _enter(self, operation: str, task_id: str | None = None, **kwargs: Any) -> None:
        self.calls.append((operation, {"task_id": task_id, **kwargs} if task_id else kwargs))
        # Suspend like a real network call so optimistic state is observable
        await asyncio.sleep(0)
        if task_id and (operation, task_id) in self._id_failures:
            raise self._id_failures[(operation, task_id)]
        if self._failures[operation]:
            raise self._failures[operation].pop(0)

    async def list_tasks(self) -> list[Task]:
        await self._enter("list_tasks")
        return sorted(self.tasks.values(), key=lambda task: task.created_at, reverse=True)

    async def create_task(self, *, title: str) -> Task:
        await self._enter("create_task", title=title)
        for task in self.tasks.values():
            if normalize_title(task.title) == normalize_title(title):
                raise ConflictError(DUPLICATE_TITLE_MESSAGE, conflicting_id=task.id)

        now = datetime.now(UTC)
        task = Task(id=generate_record_id(), title=title.strip(), created_at=now, updated_at=now)
        self.tasks[task.id] = task
        return task

    async def update_task(
        self,
        *,
        task_id: str,
        title: str | None = None,
        status: TaskStatus | None = None,
    ) -> Task:
        await self._enter("update_task", task_id, title=title, status=status)
        current = self.tasks.get(task_id)
        if current is None:
            raise NotFoundError("Task not found")

        changes: dict[str, Any] = {"updated_at": datetime.now(UTC)}
        if title is not None:
            changes["title"] = title
        if status is not None:
            changes["status"] = status
        updated = current.model_copy(update=changes)
        self.tasks[task_id] = updated
        return updated

    async def delete_task(self, *, task_id: str) -> Task:
        await self._enter("delete_task", task_id)
        task = self.tasks.pop(task_id, None)
        if task is None:
            raise NotFoundError("Task not found")
        return task


class BrokenCacheBackend:
    """Cache backend whose every operation fails, like a full or corrupted store."""

    def __init__(self, message: str = "Local storage quota exceeded"):
        self.message = message
        self.attempts = 0
        self.closed = False

    async def get(self, key: str) -> str | None:
        self.attempts += 1
        raise StorageError(self.message)

    async def set(self, key: str, value: str) -> bool:
        self.attempts += 1
        raise StorageError(self.message)

    async def delete(self, *keys: str) -> bool:
        self.attempts += 1
        raise StorageError(self.message)

    def get_health_status(self) -> dict:
        return {"backend": "broken", "failure_count": self.attempts}

    async def close(self) -> None:
        self.closed = True
