"""Export the task list to JSON, CSV or text, and import tasks back from JSON or CSV.

Imports only parse and validate. Creating the imported tasks goes through the
reconciler like any other create.
"""

import csv
import io
import json
import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, TypeAdapter

from src.core.errors import ValidationError
from src.core.validation import validate_title
from src.domain.task import Task, TaskStatus


logger = logging.getLogger(__name__)

CSV_HEADERS = ["Title", "Status", "Created At", "Updated At"]

_TASK_LIST = TypeAdapter(list[Task])


class ImportedTask(BaseModel):
    """A row that passed import validation."""

    title: str
    status: TaskStatus = TaskStatus.PENDING


class ImportResult(BaseModel):
    """Valid rows of an import and how many rows were rejected."""

    tasks: list[ImportedTask] = Field(default_factory=list)
    rejected: int = 0
    message: str = ""


def _timestamp(moment: datetime) -> str:
    return moment.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _plural(count: int) -> str:
    return "task" if count == 1 else "tasks"


def _accept(title: Any, status: Any) -> ImportedTask | None:  # noqa: ANN401
    if not isinstance(title, str) or not isinstance(status, str):
        return None
    validation = validate_title(title)
    if not validation.valid or validation.trimmed_title is None:
        return None
    try:
        parsed = TaskStatus(status.strip().lower())
    except ValueError:
        return None
    return ImportedTask(title=validation.trimmed_title, status=parsed)


def _collect(rows: Iterable[tuple[Any, Any]], *, source: str) -> ImportResult:
    accepted: list[ImportedTask] = []
    rejected = 0
    for title, status in rows:
        task = _accept(title, status)
        if task is None:
            rejected += 1
        else:
            accepted.append(task)

    if not accepted:
        raise ValidationError(f"No valid tasks found in {source}")

    logger.info("Parsed import", extra={"source": source, "accepted": len(accepted), "rejected": rejected})
    suffix = " from CSV" if source == "CSV" else ""
    return ImportResult(
        tasks=accepted,
        rejected=rejected,
        message=f"Successfully imported {len(accepted)} {_plural(len(accepted))}{suffix}",
    )


def export_json(tasks: Sequence[Task]) -> str:
    """Full task records as an indented JSON array."""
    return _TASK_LIST.dump_json(list(tasks), indent=2).decode("utf-8")


def export_csv(tasks: Sequence[Task]) -> str:
    """Title, status and local timestamps, quoted as RFC 4180 requires."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for task in tasks:
        writer.writerow([task.title, task.status.value, _timestamp(task.created_at), _timestamp(task.updated_at)])
    return buffer.getvalue()


def export_text(tasks: Sequence[Task]) -> str:
    """Numbered plain-text listing."""
    entries = [
        f"{index}. {task.title}\n"
        f"   Status: {task.status.value}\n"
        f"   Created: {_timestamp(task.created_at)}\n"
        f"   Updated: {_timestamp(task.updated_at)}\n"
        for index, task in enumerate(tasks, start=1)
    ]
    return "\n".join(entries)


def import_json(content: str) -> ImportResult:
    """Parse a JSON array of task-like objects.

    Raises:
        ValidationError: If the content is not a JSON array or has no valid task
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValidationError("Failed to parse JSON file") from e

    if not isinstance(data, list):
        raise ValidationError("Invalid file format: Expected an array of tasks")

    rows = [(item.get("title"), item.get("status")) if isinstance(item, dict) else (None, None) for item in data]
    return _collect(rows, source="file")


def import_csv(content: str) -> ImportResult:
    """Parse CSV with a header row followed by title,status[,...] rows.

    Raises:
        ValidationError: If there are no data rows or no valid task
    """
    try:
        rows = [row for row in csv.reader(io.StringIO(content)) if any(cell.strip() for cell in row)]
    except csv.Error as e:
        raise ValidationError("Failed to parse CSV file") from e

    if len(rows) < 2:
        raise ValidationError("CSV file is empty or invalid")

    return _collect(((row[0], row[1]) if len(row) >= 2 else (None, None) for row in rows[1:]), source="CSV")


def export_filename(prefix: str, extension: str, *, now: datetime | None = None) -> str:
    """File name stamped with the UTC export time, e.g. tasks-2024-05-01T10-30-00.csv."""
    moment = (now or datetime.now(UTC)).astimezone(UTC)
    return f"{prefix}-{moment.strftime('%Y-%m-%dT%H-%M-%S')}.{extension}"
