"""Task input validation shared by the task API and the client.

All functions are pure: they never touch the store, the network or the cache.
"""

import html
import re
from collections.abc import Iterable

from pydantic import BaseModel, Field

from src.core.config import constants
from src.core.errors import TitleErrorKind, ValidationError
from src.domain.task import Task, TaskStatus


TITLE_ERROR_MESSAGES: dict[TitleErrorKind, str] = {
    TitleErrorKind.REQUIRED: "Task title is required",
    TitleErrorKind.EMPTY: "Task title cannot be empty or contain only spaces",
    TitleErrorKind.TOO_SHORT: f"Task title must be at least {constants.TITLE_MIN_LENGTH} characters long",
    TitleErrorKind.TOO_LONG: f"Task title cannot exceed {constants.TITLE_MAX_LENGTH} characters",
    TitleErrorKind.NO_ALPHANUMERIC: "Task title must contain at least one letter or number",
}

DUPLICATE_TITLE_MESSAGE = "A task with this title already exists"
INVALID_STATUS_MESSAGE = 'Invalid status. Must be "pending" or "completed"'
INVALID_ID_MESSAGE = "Invalid task ID format"

_TASK_ID_RE = re.compile(constants.TASK_ID_PATTERN)


class TitleValidation(BaseModel):
    """Outcome of validating a raw title."""

    valid: bool
    trimmed_title: str | None = None
    errors: list[str] = Field(default_factory=list)
    error_kind: TitleErrorKind | None = None

    def raise_for_error(self) -> str:
        """Return the trimmed title or raise the matching ValidationError."""
        if not self.valid or self.trimmed_title is None:
            raise ValidationError(self.errors[0], errors=self.errors, title_error=self.error_kind)
        return self.trimmed_title


class DuplicateCheck(BaseModel):
    """Outcome of a duplicate-title scan."""

    is_duplicate: bool
    conflicting_id: str | None = None
    message: str | None = None


def _reject(kind: TitleErrorKind) -> TitleValidation:
    return TitleValidation(valid=False, errors=[TITLE_ERROR_MESSAGES[kind]], error_kind=kind)


def normalize_title(title: str) -> str:
    """Key used for case-insensitive title uniqueness."""
    return title.strip().casefold()


def validate_title(raw: str | None) -> TitleValidation:
    """Validate a task title.

    Rules are checked in order and the first failure wins: present, not blank,
    at least 3 and at most 200 characters after trimming, and at least one
    letter or digit.

    Args:
        raw: Title exactly as the user typed it (None when absent)

    Returns:
        TitleValidation with the trimmed title on success
    """
    if raw is None:
        return _reject(TitleErrorKind.REQUIRED)

    trimmed = raw.strip()
    if not trimmed:
        return _reject(TitleErrorKind.EMPTY)
    if len(trimmed) < constants.TITLE_MIN_LENGTH:
        return _reject(TitleErrorKind.TOO_SHORT)
    if len(trimmed) > constants.TITLE_MAX_LENGTH:
        return _reject(TitleErrorKind.TOO_LONG)
    if not any(char.isalnum() for char in trimmed):
        return _reject(TitleErrorKind.NO_ALPHANUMERIC)

    return TitleValidation(valid=True, trimmed_title=trimmed)


def check_duplicate_title(
    title: str,
    existing_tasks: Iterable[Task],
    *,
    exclude_id: str | None = None,
) -> DuplicateCheck:
    """Check a title against existing tasks, ignoring case and surrounding whitespace.

    Args:
        title: Candidate title
        existing_tasks: Tasks to compare against
        exclude_id: Task being edited, skipped by the scan

    Returns:
        DuplicateCheck naming the first conflicting task, if any
    """
    key = normalize_title(title)
    for task in existing_tasks:
        if task.id == exclude_id:
            continue
        if normalize_title(task.title) == key:
            return DuplicateCheck(is_duplicate=True, conflicting_id=task.id, message=DUPLICATE_TITLE_MESSAGE)
    return DuplicateCheck(is_duplicate=False)


def validate_status(raw: str | None) -> TaskStatus:
    """Parse a status string, raising ValidationError for anything but pending/completed."""
    if raw is None:
        raise ValidationError("Status is required")
    try:
        return TaskStatus(raw)
    except ValueError as e:
        raise ValidationError(INVALID_STATUS_MESSAGE) from e


def validate_task_id(raw: str) -> str:
    """Reject identifiers that the document store could never have issued."""
    if not _TASK_ID_RE.fullmatch(raw):
        raise ValidationError(INVALID_ID_MESSAGE)
    return raw.lower()


def sanitize_input(text: str) -> str:
    """Escape user text for presentations that build markup from it."""
    return html.escape(text, quote=True).replace("/", "&#x2F;")
