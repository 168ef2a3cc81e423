"""Pytest configuration and fixtures for integration tests."""

from collections.abc import Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from src.client.local_cache import LocalCache
from src.client.reconciler import TaskReconciler
from src.client.remote import TaskApiClient
from src.core.cache_client import InMemoryCache
from src.main import app


@pytest.fixture
def api_client(db_path: str) -> Generator[TestClient]:
    """TestClient running the app lifespan against a temporary database."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def asgi_api(sqlite_db: str) -> TaskApiClient:
    """TaskApiClient talking to the app in-process over ASGI."""
    return TaskApiClient(
        "http://testserver",
        transport=httpx.ASGITransport(app=app),
        max_retries=1,
    )


@pytest.fixture
def session(asgi_api: TaskApiClient) -> TaskReconciler:
    """A client session wired to the real API with an in-memory cache."""
    return TaskReconciler(asgi_api, LocalCache(InMemoryCache()))
