"""Client-side task state: optimistic mutations reconciled against the task API.

A ``TaskReconciler`` owns one session's task list. Mutations are applied to
the in-memory list first, then confirmed by the remote. A failed confirmation
rolls a single task back to its snapshot, or re-fetches the whole list when
the operation changed the list's shape (delete, bulk). The local cache mirrors
the list after every confirmed change and serves as the fallback when the
remote cannot be reached.

Preconditions that can be checked locally (title rules, duplicate titles,
unknown ids, empty selections) raise before anything changes. Remote outcomes
are returned as result objects, never raised.
"""

import asyncio
import logging
from collections import OrderedDict, deque
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from src.client.local_cache import LocalCache
from src.client.selection import TaskSelection
from src.client.stats import StatsSummary, summarize
from src.client.view import ViewOptions, derive_view
from src.core.config import constants
from src.core.errors import (
    ConflictError,
    EmptySelectionError,
    ErrorResponse,
    NotFoundError,
    StorageError,
    TaskError,
    classify_error_with_response,
)
from src.core.logging import log_with_task_context, span
from src.core.validation import check_duplicate_title, validate_status, validate_title
from src.domain.task import DELETE_ACTION, BulkAction, Task, TaskStatus


logger = logging.getLogger(__name__)

Listener = Callable[["TaskReconciler"], None]


class TaskApi(Protocol):
    """Remote task resource, as implemented by TaskApiClient."""

    async def list_tasks(self) -> list[Task]: ...

    async def create_task(self, *, title: str) -> Task: ...

    async def update_task(
        self, *, task_id: str, title: str | None = None, status: TaskStatus | None = None
    ) -> Task: ...

    async def delete_task(self, *, task_id: str) -> Task: ...


class LoadResult(BaseModel):
    """Outcome of (re)loading the list."""

    ok: bool = Field(..., description="Whether the remote answered")
    source: Literal["remote", "cache"]
    count: int = 0
    online: bool = True
    error: ErrorResponse | None = None
    warnings: list[str] = Field(default_factory=list)


class MutationResult(BaseModel):
    """Outcome of a single-task mutation."""

    ok: bool
    task: Task | None = Field(default=None, description="Task as it stands after reconciliation")
    changed: bool = Field(default=True, description="False when the request was a no-op")
    error: ErrorResponse | None = None
    rolled_back_to: Task | None = Field(default=None, description="Snapshot restored after a failed confirmation")
    refetched: bool = False
    diverged: bool = Field(default=False, description="Local state could not be confirmed against the remote")
    warnings: list[str] = Field(default_factory=list)


class BulkResult(BaseModel):
    """Outcome of one action over many tasks."""

    ok: bool
    action: str
    message: str = ""
    succeeded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list, description="Ids not in the list")
    unchanged: list[str] = Field(default_factory=list, description="Tasks already at the target status")
    errors: dict[str, ErrorResponse] = Field(default_factory=dict)
    refetched: bool = False
    diverged: bool = False
    warnings: list[str] = Field(default_factory=list)


def _plural(count: int) -> str:
    return "task" if count == 1 else "tasks"


def _bulk_message(action: BulkAction, succeeded: int, failed: int) -> str:
    verb = "deleted" if action == DELETE_ACTION else f"marked as {action}"
    message = f"{succeeded} {_plural(succeeded)} {verb}"
    if failed:
        message += f", {failed} failed"
    return message


class TaskReconciler:
    """Authoritative task list for one client session."""

    def __init__(
        self,
        api: TaskApi,
        cache: LocalCache,
        *,
        error_log_size: int = constants.ERROR_LOG_MAXLEN,
    ) -> None:
        self._api = api
        self._cache = cache
        self._tasks: OrderedDict[str, Task] = OrderedDict()
        self._online = True
        self._persistence_degraded = False
        self._in_flight: set[str] = set()
        self._listeners: list[Listener] = []
        self._recent_errors: deque[ErrorResponse] = deque(maxlen=error_log_size)
        self.selection = TaskSelection()

    # State access

    @property
    def tasks(self) -> list[Task]:
        """Tasks in display order (a copy)."""
        return list(self._tasks.values())

    @property
    def online(self) -> bool:
        return self._online

    @property
    def persistence_degraded(self) -> bool:
        """True while the local cache is refusing writes."""
        return self._persistence_degraded

    def cache_health(self) -> dict[str, Any]:
        """Local cache backend health, with whether persistence is currently degraded."""
        return {**self._cache.health_status(), "degraded": self._persistence_degraded}

    @property
    def recent_errors(self) -> list[ErrorResponse]:
        """Most recent classified errors, oldest first."""
        return list(self._recent_errors)

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def is_pending(self, task_id: str) -> bool:
        """Whether a remote call for this task is still in flight."""
        return task_id in self._in_flight

    def view(self, options: ViewOptions | None = None) -> list[Task]:
        return derive_view(self._tasks.values(), options)

    def stats(self, *, now: datetime | None = None) -> StatsSummary:
        return summarize(self.tasks, now=now)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener after every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Internals

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Task list listener failed")

    def _record_error(self, exc: BaseException) -> ErrorResponse:
        response = classify_error_with_response(exc)
        self._recent_errors.append(response)
        logger.warning("Task operation failed", extra={"code": response.code, "error": response.message})
        return response

    def _require(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    def _replace(self, tasks: Iterable[Task]) -> None:
        self._tasks = OrderedDict((task.id, task) for task in tasks)
        self.selection.retain(self._tasks)

    async def _mirror(self) -> list[str]:
        """Save the list to the local cache; failures only degrade persistence."""
        try:
            await self._cache.save(self.tasks)
        except StorageError as e:
            self._persistence_degraded = True
            response = self._record_error(e)
            return [response.message]
        self._persistence_degraded = False
        return []

    async def _refetch(self) -> tuple[bool, list[str]]:
        """Rebuild the list from the remote. Returns (succeeded, warnings)."""
        try:
            tasks = await self._api.list_tasks()
        except TaskError as e:
            self._record_error(e)
            logger.warning("Re-fetch after failed mutation also failed")
            return False, []

        self._replace(tasks)
        self._online = True
        warnings = await self._mirror()
        self._notify()
        return True, warnings

    async def _commit_single(
        self,
        snapshot: Task,
        optimistic: Task,
        confirm: Callable[[], Awaitable[Task]],
        *,
        operation: str,
    ) -> MutationResult:
        """Apply optimistic in place, then confirm it or restore snapshot."""
        task_id = snapshot.id
        self._tasks[task_id] = optimistic
        self._in_flight.add(task_id)
        self._notify()

        error: TaskError | None = None
        try:
            confirmed = await confirm()
        except TaskError as e:
            error = e
        finally:
            self._in_flight.discard(task_id)

        if error is not None:
            response = self._record_error(error)
            # A reload may have dropped the task meanwhile; do not resurrect it
            if task_id in self._tasks:
                self._tasks[task_id] = snapshot
            self._notify()
            log_with_task_context(logger, "info", f"Rolled back {operation}", task_id=task_id, code=response.code)
            return MutationResult(ok=False, task=snapshot, error=response, rolled_back_to=snapshot)

        if task_id in self._tasks:
            self._tasks[task_id] = confirmed
        warnings = await self._mirror()
        self._notify()
        return MutationResult(ok=True, task=confirmed, warnings=warnings)

    def _restore(self, snapshots: dict[str, Task], order: list[str]) -> None:
        """Put snapshots back and restore their original positions."""
        for task_id, snapshot in snapshots.items():
            self._tasks[task_id] = snapshot
        rank = {task_id: index for index, task_id in enumerate(order)}
        self._tasks = OrderedDict(sorted(self._tasks.items(), key=lambda item: rank.get(item[0], -1)))

    # Operations

    async def load(self) -> LoadResult:
        """Fetch the list from the remote, falling back to the local cache."""
        with span("reconciler.load"):
            try:
                tasks = await self._api.list_tasks()
            except TaskError as e:
                error = self._record_error(e)
                self._online = False
                warnings = ["Unable to reach the server. Showing cached tasks (offline mode)."]
                try:
                    cached = await self._cache.load()
                except StorageError as storage_error:
                    self._record_error(storage_error)
                    cached = []
                    warnings.append("Cached tasks could not be read.")

                self._replace(cached)
                self._notify()
                logger.info("Loaded tasks from local cache", extra={"count": len(cached)})
                return LoadResult(
                    ok=False,
                    source="cache",
                    count=len(cached),
                    online=False,
                    error=error,
                    warnings=warnings,
                )

            self._replace(tasks)
            self._online = True
            warnings = await self._mirror()
            self._notify()
            logger.info("Loaded tasks from remote", extra={"count": len(tasks)})
            return LoadResult(ok=True, source="remote", count=len(tasks), online=True, warnings=warnings)

    async def create(self, title: str | None) -> MutationResult:
        """Create a task. The new task is inserted at the head once the remote confirms it.

        Raises:
            ValidationError: If the title breaks a title rule
            ConflictError: If a task in the list already uses the title
        """
        with span("reconciler.create"):
            trimmed = validate_title(title).raise_for_error()
            duplicate = check_duplicate_title(trimmed, self._tasks.values())
            if duplicate.is_duplicate:
                raise ConflictError(duplicate.message or "Duplicate title", conflicting_id=duplicate.conflicting_id)

            try:
                task = await self._api.create_task(title=trimmed)
            except ConflictError as e:
                # The remote knows a task this session does not; pick it up
                response = self._record_error(e)
                refetched, warnings = await self._refetch()
                return MutationResult(ok=False, error=response, refetched=refetched, warnings=warnings)
            except TaskError as e:
                return MutationResult(ok=False, error=self._record_error(e))

            self._tasks[task.id] = task
            self._tasks.move_to_end(task.id, last=False)
            warnings = await self._mirror()
            self._notify()
            log_with_task_context(logger, "info", "Created task", task_id=task.id)
            return MutationResult(ok=True, task=task, warnings=warnings)

    async def update_status(self, task_id: str, status: TaskStatus | str) -> MutationResult:
        """Move a task to status optimistically, rolling back if the remote refuses.

        Raises:
            NotFoundError: If the id is not in the list
            ValidationError: If status is not pending/completed
        """
        with span("reconciler.update_status"):
            current = self._require(task_id)
            target = validate_status(status)
            if current.status is target:
                return MutationResult(ok=True, task=current, changed=False)

            optimistic = current.model_copy(update={"status": target})
            return await self._commit_single(
                current,
                optimistic,
                lambda: self._api.update_task(task_id=task_id, status=target),
                operation="update_status",
            )

    async def toggle_status(self, task_id: str) -> MutationResult:
        current = self._require(task_id)
        return await self.update_status(task_id, current.status.toggled)

    async def update_title(self, task_id: str, title: str | None) -> MutationResult:
        """Rename a task optimistically, rolling back if the remote refuses.

        Raises:
            NotFoundError: If the id is not in the list
            ValidationError: If the title breaks a title rule
            ConflictError: If another task in the list already uses the title
        """
        with span("reconciler.update_title"):
            current = self._require(task_id)
            trimmed = validate_title(title).raise_for_error()
            duplicate = check_duplicate_title(trimmed, self._tasks.values(), exclude_id=task_id)
            if duplicate.is_duplicate:
                raise ConflictError(duplicate.message or "Duplicate title", conflicting_id=duplicate.conflicting_id)

            if trimmed == current.title:
                return MutationResult(ok=True, task=current, changed=False)

            optimistic = current.model_copy(update={"title": trimmed})
            return await self._commit_single(
                current,
                optimistic,
                lambda: self._api.update_task(task_id=task_id, title=trimmed),
                operation="update_title",
            )

    async def remove(self, task_id: str) -> MutationResult:
        """Delete a task, re-fetching the list if the remote refuses.

        If the re-fetch fails as well the task stays removed locally and the
        result is flagged as diverged.

        Raises:
            NotFoundError: If the id is not in the list
        """
        with span("reconciler.remove"):
            snapshot = self._require(task_id)
            del self._tasks[task_id]
            self.selection.deselect(task_id)
            self._in_flight.add(task_id)
            warnings = await self._mirror()
            self._notify()

            error: TaskError | None = None
            try:
                await self._api.delete_task(task_id=task_id)
            except TaskError as e:
                error = e
            finally:
                self._in_flight.discard(task_id)

            if error is None:
                log_with_task_context(logger, "info", "Deleted task", task_id=task_id)
                return MutationResult(ok=True, task=snapshot, warnings=warnings)

            response = self._record_error(error)
            refetched, refetch_warnings = await self._refetch()
            if not refetched:
                log_with_task_context(logger, "warning", "Delete unconfirmed, list diverged", task_id=task_id)
            return MutationResult(
                ok=False,
                task=snapshot,
                error=response,
                refetched=refetched,
                diverged=not refetched,
                warnings=warnings + refetch_warnings,
            )

    async def bulk_apply(self, task_ids: Iterable[str], action: BulkAction | str) -> BulkResult:
        """Apply a status change or delete to many tasks with one remote call each.

        All optimistic changes are applied first, then the remote calls run
        concurrently. Any failure triggers one re-fetch of the list; if that
        fails too, the failed tasks are restored from their snapshots.

        Raises:
            EmptySelectionError: If task_ids is empty
            ValidationError: If action is neither a status nor "delete"
        """
        with span("reconciler.bulk_apply"):
            ids = list(dict.fromkeys(task_ids))
            if not ids:
                raise EmptySelectionError("Please select at least one task")

            is_delete = action == DELETE_ACTION
            target = None if is_delete else validate_status(action)
            bulk_action: BulkAction = DELETE_ACTION if target is None else target

            skipped = [task_id for task_id in ids if task_id not in self._tasks]
            known = [task_id for task_id in ids if task_id in self._tasks]
            unchanged = [task_id for task_id in known if target is not None and self._tasks[task_id].status is target]
            affected = [task_id for task_id in known if task_id not in unchanged]

            if not affected:
                message = (
                    f"All selected tasks are already {target}" if unchanged else "None of the selected tasks exist"
                )
                return BulkResult(
                    ok=bool(unchanged),
                    action=str(bulk_action),
                    message=message,
                    skipped=skipped,
                    unchanged=unchanged,
                )

            order = list(self._tasks)
            snapshots = {task_id: self._tasks[task_id] for task_id in affected}
            for task_id in affected:
                if target is None:
                    del self._tasks[task_id]
                    self.selection.deselect(task_id)
                else:
                    self._tasks[task_id] = snapshots[task_id].model_copy(update={"status": target})
            self._in_flight.update(affected)
            warnings = await self._mirror() if is_delete else []
            self._notify()

            def confirm(task_id: str) -> Awaitable[Task]:
                if target is None:
                    return self._api.delete_task(task_id=task_id)
                return self._api.update_task(task_id=task_id, status=target)

            try:
                outcomes = await asyncio.gather(*(confirm(task_id) for task_id in affected), return_exceptions=True)
            finally:
                self._in_flight.difference_update(affected)

            succeeded: list[str] = []
            failed: list[str] = []
            errors: dict[str, ErrorResponse] = {}
            for task_id, outcome in zip(affected, outcomes, strict=True):
                if isinstance(outcome, TaskError):
                    failed.append(task_id)
                    errors[task_id] = self._record_error(outcome)
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    succeeded.append(task_id)
                    if target is not None and task_id in self._tasks:
                        self._tasks[task_id] = outcome

            refetched = False
            diverged = False
            if failed:
                refetched, refetch_warnings = await self._refetch()
                warnings.extend(refetch_warnings)
                if not refetched:
                    self._restore({task_id: snapshots[task_id] for task_id in failed}, order)
                    diverged = True
                    logger.warning("Bulk operation unconfirmed, rolled back failed tasks", extra={"failed": failed})

            if not refetched:
                warnings.extend(await self._mirror())
                self._notify()

            logger.info(
                "Bulk operation finished",
                extra={"action": str(bulk_action), "succeeded": len(succeeded), "failed": len(failed)},
            )
            return BulkResult(
                ok=not failed,
                action=str(bulk_action),
                message=_bulk_message(bulk_action, len(succeeded), len(failed)),
                succeeded=succeeded,
                failed=failed,
                skipped=skipped,
                unchanged=unchanged,
                errors=errors,
                refetched=refetched,
                diverged=diverged,
                warnings=warnings,
            )

    async def bulk_apply_selection(self, action: BulkAction | str) -> BulkResult:
        """Run bulk_apply over the session selection, then clear the selection."""
        try:
            return await self.bulk_apply(self.selection.ids, action)
        finally:
            self.selection.clear()

    async def set_online(self, online: bool) -> LoadResult | None:
        """Record a connectivity change. Coming back online reloads the list.

        The reload is not coordinated with mutations still in flight, so a
        reply to one of them can land on the freshly loaded list.
        """
        if online and not self._online:
            logger.info("Back online, reloading tasks")
            return await self.load()

        if self._online != online:
            self._online = online
            logger.info("Connectivity changed", extra={"online": online})
            self._notify()
        return None

    async def close(self) -> None:
        """End the session: drop listeners and release the local cache backend."""
        self._listeners.clear()
        await self._cache.close()
        logger.info("Task session closed", extra={"tasks": len(self._tasks)})
