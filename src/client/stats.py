"""Task list statistics for dashboards."""

import math
from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel

from src.core.config import constants
from src.domain.task import Task, TaskStatus


class CompletionTrend(StrEnum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class TaskStats(BaseModel):
    """Counts and completion percentage."""

    total: int
    completed: int
    pending: int
    progress: int


class StatsSummary(TaskStats):
    """Everything a stats panel shows."""

    created_today: int
    completed_today: int
    productivity_score: int
    trend: CompletionTrend
    message: str


def _percent(part: int, whole: int) -> int:
    """Whole percentage, halves rounded up."""
    if whole == 0:
        return 0
    return math.floor(part * 100 / whole + 0.5)


def _local_day(moment: datetime) -> date:
    return moment.astimezone().date()


def _today() -> date:
    return datetime.now().astimezone().date()


def calculate_stats(tasks: Sequence[Task]) -> TaskStats:
    completed = sum(1 for task in tasks if task.status is TaskStatus.COMPLETED)
    pending = sum(1 for task in tasks if task.status is TaskStatus.PENDING)
    return TaskStats(
        total=len(tasks),
        completed=completed,
        pending=pending,
        progress=_percent(completed, len(tasks)),
    )


def tasks_created_today(tasks: Sequence[Task], *, today: date | None = None) -> list[Task]:
    """Tasks whose local creation day is today."""
    today = today or _today()
    return [task for task in tasks if _local_day(task.created_at) == today]


def tasks_completed_today(tasks: Sequence[Task], *, today: date | None = None) -> list[Task]:
    """Completed tasks last updated today, taken as completed today."""
    today = today or _today()
    return [task for task in tasks if task.is_completed and _local_day(task.updated_at) == today]


def productivity_score(tasks: Sequence[Task], *, today: date | None = None) -> int:
    """Completion percentage plus a bonus per task completed today, capped at 100."""
    if not tasks:
        return 0

    score = calculate_stats(tasks).progress
    completed_today = len(tasks_completed_today(tasks, today=today))
    if completed_today:
        score = min(100, score + completed_today * constants.PRODUCTIVITY_BONUS_PER_TASK)
    return score


def completion_trend(tasks: Sequence[Task], *, now: datetime | None = None) -> CompletionTrend:
    """Classify the completion rate of tasks created within the trend window.

    At least 70% completed is increasing, at most 30% is decreasing, and
    anything in between (or no recent tasks at all) is stable.
    """
    now = now or datetime.now(UTC)
    window_start = now - timedelta(days=constants.TREND_WINDOW_DAYS)
    recent = [task for task in tasks if task.created_at >= window_start]
    if not recent:
        return CompletionTrend.STABLE

    rate = sum(1 for task in recent if task.is_completed) * 100 / len(recent)
    if rate >= constants.TREND_INCREASING_PERCENT:
        return CompletionTrend.INCREASING
    if rate <= constants.TREND_DECREASING_PERCENT:
        return CompletionTrend.DECREASING
    return CompletionTrend.STABLE


def motivational_message(stats: TaskStats) -> str:
    if stats.progress == 100 and stats.completed > 0:
        return "Perfect! All tasks completed!"
    if stats.progress >= 80:
        return "Almost there! Keep going!"
    if stats.progress >= 50:
        return "Great progress! You're halfway!"
    if stats.progress >= 25:
        return "Good start! Keep it up!"
    if stats.pending > 0:
        return "Let's get started on those tasks!"
    return "Ready to be productive?"


def summarize(tasks: Sequence[Task], *, now: datetime | None = None) -> StatsSummary:
    """Compute every statistic over tasks at one instant."""
    now = now or datetime.now(UTC)
    today = _local_day(now)
    stats = calculate_stats(tasks)
    return StatsSummary(
        **stats.model_dump(),
        created_today=len(tasks_created_today(tasks, today=today)),
        completed_today=len(tasks_completed_today(tasks, today=today)),
        productivity_score=productivity_score(tasks, today=today),
        trend=completion_trend(tasks, now=now),
        message=motivational_message(stats),
    )
