"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from src.core import db_client
from src.core.config import settings
from src.domain.task import Task, TaskStatus


logger = logging.getLogger(__name__)

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_task(
    title: str,
    *,
    task_id: str | None = None,
    status: TaskStatus = TaskStatus.PENDING,
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
) -> Task:
    """Build a Task with a store-like id and fixed timestamps."""
    created = created_at or BASE_TIME
    return Task(
        id=task_id or db_client.generate_record_id(),
        title=title,
        status=status,
        created_at=created,
        updated_at=updated_at or created,
    )


@pytest.fixture
def task_factory():
    """Build tasks one minute apart, newest last, unless created_at is given."""
    counter = {"n": 0}

    def _create(title: str, **kwargs) -> Task:
        counter["n"] += 1
        kwargs.setdefault("created_at", BASE_TIME + timedelta(minutes=counter["n"]))
        return make_task(title, **kwargs)

    return _create


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Point the document store at a fresh SQLite file."""
    path = str(tmp_path / "tasktracker-test.db")
    monkeypatch.setattr(settings, "database_path", path)
    return path


@pytest.fixture
async def sqlite_db(db_path: str) -> AsyncGenerator[str]:
    """Initialized document store on a temporary file, closed after the test."""
    await db_client.init_db()
    logger.debug("Test database ready", extra={"db_path": db_path})
    yield db_path
    await db_client.close_connection()
