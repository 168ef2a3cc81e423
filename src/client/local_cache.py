"""Offline mirror of the task list.

The whole list is serialized as one JSON array under a single key, so a load
either returns every cached task or fails; it never returns part of a list.
"""

import logging
from typing import Any, Protocol

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.core.cache_client import FileCache, InMemoryCache
from src.core.config import Settings, settings
from src.core.errors import StorageError
from src.core.redis_client import RedisCache
from src.domain.task import Task


logger = logging.getLogger(__name__)

_TASK_LIST = TypeAdapter(list[Task])


class CacheBackend(Protocol):
    """Key-value store the mirror writes through."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> bool: ...

    async def delete(self, *keys: str) -> bool: ...

    def get_health_status(self) -> dict[str, Any]: ...

    async def close(self) -> None: ...


def build_cache_backend(config: Settings = settings) -> CacheBackend:
    """Create the backend selected by LOCAL_CACHE_BACKEND."""
    if config.local_cache_backend == "memory":
        return InMemoryCache()
    if config.local_cache_backend == "redis":
        return RedisCache(config.require_credential("redis_url", "Redis"))
    return FileCache(config.local_cache_path, quota_bytes=config.local_cache_quota_bytes)


class LocalCache:
    """Best-effort persistence of the full task list.

    Every failure is raised as StorageError; deciding whether that matters is
    left to the caller.
    """

    def __init__(self, backend: CacheBackend | None = None, *, key: str | None = None) -> None:
        self._backend = backend if backend is not None else build_cache_backend()
        self._key = key or settings.local_cache_key

    @property
    def key(self) -> str:
        return self._key

    async def save(self, tasks: list[Task]) -> None:
        """Replace the cached list with tasks, in order."""
        payload = _TASK_LIST.dump_json(tasks).decode("utf-8")
        try:
            await self._backend.set(self._key, payload)
        except OSError as e:
            raise StorageError(f"Could not save tasks to local storage: {e}") from e
        logger.debug("Saved %d tasks to local cache", len(tasks), extra={"key": self._key})

    async def load(self) -> list[Task]:
        """Return the cached list, or an empty list when nothing was cached.

        Raises:
            StorageError: If the backend fails or the cached content is corrupted
        """
        try:
            payload = await self._backend.get(self._key)
        except OSError as e:
            raise StorageError(f"Could not load tasks from local storage: {e}") from e

        if payload is None:
            return []

        try:
            tasks = _TASK_LIST.validate_json(payload)
        except PydanticValidationError as e:
            logger.warning("Cached task list is corrupted", extra={"key": self._key})
            raise StorageError("Cached task list is corrupted") from e

        logger.debug("Loaded %d tasks from local cache", len(tasks), extra={"key": self._key})
        return tasks

    async def clear(self) -> None:
        """Forget the cached list."""
        try:
            await self._backend.delete(self._key)
        except OSError as e:
            raise StorageError(f"Could not clear local storage: {e}") from e

    def health_status(self) -> dict[str, Any]:
        """Backend health counters plus the key this mirror writes under."""
        return {"key": self._key, **self._backend.get_health_status()}

    async def close(self) -> None:
        """Release the backend's connections."""
        await self._backend.close()
