"""Pytest configuration and fixtures for unit tests."""

import pytest

from src.client.local_cache import LocalCache
from src.client.reconciler import TaskReconciler
from src.core.cache_client import InMemoryCache
from tests.unit.mocks import FakeTaskApi


@pytest.fixture
def memory_backend() -> InMemoryCache:
    """Provides a fresh in-memory cache backend for each test."""
    return InMemoryCache()


@pytest.fixture
def local_cache(memory_backend: InMemoryCache) -> LocalCache:
    return LocalCache(memory_backend, key="tasktracker_tasks")


@pytest.fixture
def fake_api() -> FakeTaskApi:
    """Provides an empty fake task API; tests seed fake_api.tasks as needed."""
    return FakeTaskApi()


@pytest.fixture
def reconciler(fake_api: FakeTaskApi, local_cache: LocalCache) -> TaskReconciler:
    return TaskReconciler(fake_api, local_cache)


@pytest.fixture
def seed(fake_api: FakeTaskApi, reconciler: TaskReconciler):
    """Put tasks on the fake remote and load them into the reconciler."""

    async def _seed(*tasks) -> TaskReconciler:
        fake_api.tasks = {task.id: task for task in tasks}
        await reconciler.load()
        fake_api.calls.clear()
        return reconciler

    return _seed
