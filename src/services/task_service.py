"""Task service for CRUD operations behind the task API."""

import logging
from typing import Any

from src.core import db_client
from src.core.errors import ConflictError, NotFoundError, ServerError
from src.core.logging import span
from src.core.validation import (
    DUPLICATE_TITLE_MESSAGE,
    normalize_title,
    validate_status,
    validate_task_id,
    validate_title,
)
from src.domain.task import Task, TaskStatus


logger = logging.getLogger(__name__)

COLLECTION = "tasks"


def _to_task(record: dict[str, Any]) -> Task:
    return Task.model_validate(record)


async def _find_conflict(*, title: str, exclude_id: str | None = None) -> dict[str, Any] | None:
    """Return the record already using this title (case-insensitively), if any."""
    existing = await db_client.get_record_by_field(
        collection=COLLECTION,
        field="title_key",
        value=normalize_title(title),
    )
    if existing and existing["id"] != exclude_id:
        return existing
    return None


async def _get_existing(task_id: str) -> dict[str, Any]:
    try:
        return await db_client.get_record(collection=COLLECTION, record_id=task_id)
    except db_client.RecordNotFoundError as e:
        raise NotFoundError("Task not found") from e
    except db_client.DatabaseError as e:
        raise ServerError("Error fetching task") from e


async def list_tasks(*, status: TaskStatus | None = None) -> list[Task]:
    """List tasks newest first, optionally restricted to one status.

    Args:
        status: Optional status filter

    Returns:
        Tasks sorted by creation time, newest first
    """
    with span("task_service.list_tasks"):
        try:
            records = await db_client.list_records(
                collection=COLLECTION,
                per_page=None,
                where={"status": status.value} if status else None,
                sort="-created_at",
            )
        except db_client.DatabaseError as e:
            raise ServerError("Error fetching tasks") from e

        logger.debug("Retrieved %d tasks", len(records), extra={"status": status})
        return [_to_task(record) for record in records]


async def get_task(*, task_id: str) -> Task:
    """Fetch one task.

    Raises:
        ValidationError: If the id is malformed
        NotFoundError: If no task has this id
    """
    with span("task_service.get_task"):
        task_id = validate_task_id(task_id)
        return _to_task(await _get_existing(task_id))


async def create_task(*, title: str | None) -> Task:
    """Create a pending task.

    Args:
        title: Raw title, trimmed before storing

    Returns:
        The created task with its store-assigned id and timestamps

    Raises:
        ValidationError: If the title breaks a title rule
        ConflictError: If another task already uses the title
    """
    with span("task_service.create_task"):
        trimmed = validate_title(title).raise_for_error()

        conflict = await _find_conflict(title=trimmed)
        if conflict:
            raise ConflictError(DUPLICATE_TITLE_MESSAGE, conflicting_id=conflict["id"])

        try:
            record = await db_client.create_record(
                collection=COLLECTION,
                data={
                    "title": trimmed,
                    "title_key": normalize_title(trimmed),
                    "status": TaskStatus.PENDING.value,
                },
            )
        except db_client.DuplicateRecordError as e:
            # Lost a race with a concurrent create of the same title
            conflict = await _find_conflict(title=trimmed)
            raise ConflictError(
                DUPLICATE_TITLE_MESSAGE, conflicting_id=conflict["id"] if conflict else None
            ) from e
        except db_client.DatabaseError as e:
            raise ServerError("Error creating task") from e

        logger.info("Created task", extra={"task_id": record["id"]})
        return _to_task(record)


async def update_task(
    *,
    task_id: str,
    title: str | None = None,
    status: str | None = None,
) -> tuple[Task, bool]:
    """Update a task's title and/or status.

    Fields left as None are not touched. A title equal to the current one or a
    status equal to the current one is not a change, and a request without any
    change leaves the record (including updated_at) untouched.

    Returns:
        Tuple of (task after the update, whether anything changed)

    Raises:
        ValidationError: If the id, title or status is invalid
        NotFoundError: If no task has this id
        ConflictError: If another task already uses the new title
    """
    with span("task_service.update_task"):
        task_id = validate_task_id(task_id)
        current = await _get_existing(task_id)
        changes: dict[str, Any] = {}

        if title is not None:
            trimmed = validate_title(title).raise_for_error()
            if trimmed != current["title"]:
                conflict = await _find_conflict(title=trimmed, exclude_id=task_id)
                if conflict:
                    raise ConflictError(DUPLICATE_TITLE_MESSAGE, conflicting_id=conflict["id"])
                changes["title"] = trimmed
                changes["title_key"] = normalize_title(trimmed)

        if status is not None:
            new_status = validate_status(status)
            if new_status.value != current["status"]:
                changes["status"] = new_status.value

        if not changes:
            return _to_task(current), False

        try:
            record = await db_client.update_record(collection=COLLECTION, record_id=task_id, data=changes)
        except db_client.RecordNotFoundError as e:
            raise NotFoundError("Task not found") from e
        except db_client.DuplicateRecordError as e:
            raise ConflictError(DUPLICATE_TITLE_MESSAGE) from e
        except db_client.DatabaseError as e:
            raise ServerError("Error updating task") from e

        logger.info("Updated task", extra={"task_id": task_id, "fields": sorted(changes)})
        return _to_task(record), True


async def delete_task(*, task_id: str) -> Task:
    """Delete a task and return it as it was before deletion.

    Raises:
        ValidationError: If the id is malformed
        NotFoundError: If no task has this id
    """
    with span("task_service.delete_task"):
        task_id = validate_task_id(task_id)
        record = await _get_existing(task_id)

        try:
            await db_client.delete_record(collection=COLLECTION, record_id=task_id)
        except db_client.RecordNotFoundError as e:
            raise NotFoundError("Task not found") from e
        except db_client.DatabaseError as e:
            raise ServerError("Error deleting task") from e

        logger.info("Deleted task", extra={"task_id": task_id})
        return _to_task(record)
