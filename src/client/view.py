"""Derived task views: filter, search and sort.

Nothing here mutates its input. Every call returns a new list, so the same
options over the same tasks always give the same view.
"""

import locale
import unicodedata
from collections.abc import Iterable, Sequence
from datetime import date, datetime

from pydantic import BaseModel, Field

from src.core.config import constants
from src.domain.task import SortKey, StatusFilter, Task, TaskStatus


class ViewOptions(BaseModel):
    """How the presentation wants the list shown."""

    status_filter: StatusFilter = Field(default=StatusFilter.ALL, description="Statuses to keep")
    search_query: str = Field(default="", description="Case-insensitive substring to look for")
    sort_key: SortKey = Field(default=SortKey.NEWEST, description="Ordering of the result")
    created_from: date | None = Field(default=None, description="Earliest local creation day kept (inclusive)")
    created_to: date | None = Field(default=None, description="Latest local creation day kept (inclusive)")


def _local(moment: datetime) -> datetime:
    return moment.astimezone()


def local_date_string(moment: datetime) -> str:
    """Render a timestamp as M/D/YYYY in local time, the form users search dates by."""
    local = _local(moment)
    return f"{local.month}/{local.day}/{local.year}"


def is_search_active(query: str | None) -> bool:
    return bool(query and query.strip())


def _matches_search(task: Task, term: str) -> bool:
    return (
        term in task.title.casefold()
        or term in task.status.value
        or term in local_date_string(task.created_at).casefold()
    )


def _in_date_range(task: Task, created_from: date | None, created_to: date | None) -> bool:
    day = _local(task.created_at).date()
    if created_from and day < created_from:
        return False
    return not (created_to and day > created_to)


def _created(task: Task) -> float:
    return task.created_at.timestamp()


def _collation_base(text: str) -> str:
    """Fold case and strip accents so accented titles sort beside their base letters."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char)).casefold()


def _title_key(task: Task) -> tuple[str, str]:
    return locale.strxfrm(_collation_base(task.title)), task.title


def sort_tasks(tasks: Iterable[Task], sort_key: SortKey) -> list[Task]:
    """Return tasks ordered by sort_key. Ties keep their incoming order."""
    if sort_key is SortKey.OLDEST:
        return sorted(tasks, key=_created)
    if sort_key is SortKey.A_Z:
        return sorted(tasks, key=_title_key)
    if sort_key is SortKey.Z_A:
        return sorted(tasks, key=_title_key, reverse=True)

    newest = sorted(tasks, key=_created, reverse=True)
    if sort_key is SortKey.COMPLETED_FIRST:
        return sorted(newest, key=lambda task: task.status is not TaskStatus.COMPLETED)
    if sort_key is SortKey.PENDING_FIRST:
        return sorted(newest, key=lambda task: task.status is not TaskStatus.PENDING)
    return newest


def derive_view(tasks: Iterable[Task], options: ViewOptions | None = None) -> list[Task]:
    """Filter by status, date range and search query, then sort.

    Args:
        tasks: Tasks in display order
        options: View options (defaults show everything, newest first)

    Returns:
        A new list; the input is left untouched
    """
    options = options or ViewOptions()
    result = list(tasks)

    if options.status_filter is not StatusFilter.ALL:
        result = [task for task in result if task.status.value == options.status_filter.value]

    if options.created_from or options.created_to:
        result = [task for task in result if _in_date_range(task, options.created_from, options.created_to)]

    if is_search_active(options.search_query):
        term = options.search_query.strip().casefold()
        result = [task for task in result if _matches_search(task, term)]

    return sort_tasks(result, options.sort_key)


def search_suggestions(
    tasks: Sequence[Task],
    query: str | None,
    limit: int = constants.SEARCH_SUGGESTION_LIMIT,
) -> list[str]:
    """Distinct titles containing query, in list order, at most limit of them."""
    if not is_search_active(query):
        return []

    term = query.strip().casefold()  # type: ignore[union-attr]
    suggestions: list[str] = []
    for task in tasks:
        if term in task.title.casefold() and task.title not in suggestions:
            suggestions.append(task.title)
            if len(suggestions) >= limit:
                break
    return suggestions
