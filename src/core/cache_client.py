"""Key-value stores backing the client's local cache mirror."""

import asyncio
import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any

from src.core.errors import StorageError


logger = logging.getLogger(__name__)


class InMemoryCache:
    """Thread-safe in-process key-value store. Contents die with the process."""

    def __init__(self) -> None:
        """Initialize in-memory cache."""
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

        # Health tracking
        self._last_successful_operation: float | None = None
        self._total_operations = 0

    def get_health_status(self) -> dict[str, Any]:
        """Get cache health status."""
        return {
            "backend": "memory",
            "connected": True,
            "last_successful_operation": self._last_successful_operation,
            "total_operations": self._total_operations,
            "entries": len(self._data),
        }

    def _record_success(self) -> None:
        self._last_successful_operation = time.time()
        self._total_operations += 1

    async def get(self, key: str) -> str | None:
        """Get value from cache.

        Args:
            key: Cache key

        Returns:
            Stored value or None if not found
        """
        with self._lock:
            value = self._data.get(key)
            self._record_success()
            if value is not None:
                logger.debug("Cache hit for key: %s", key)
            return value

    async def set(self, key: str, value: str) -> bool:
        """Store a value under key, replacing any previous value."""
        with self._lock:
            self._data[key] = value
            self._record_success()
            logger.debug("Cached key: %s (%d chars)", key, len(value))
            return True

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys from cache.

        Returns:
            True if any key was given
        """
        if not keys:
            return False

        with self._lock:
            for key in keys:
                self._data.pop(key, None)
            self._record_success()
            logger.debug("Deleted %d cache key(s)", len(keys))
            return True

    async def close(self) -> None:
        """Close cache (no-op for in-memory cache)."""
        logger.info("In-memory cache closed")


class FileCache:
    """Key-value pairs persisted as one JSON object in a file, with a size quota.

    Mirrors browser local storage: every write rewrites the whole file, and a
    write that would push the file past ``quota_bytes`` is refused with
    StorageError, leaving the previous contents intact.
    File access runs in a worker thread; an asyncio lock keeps read-modify-write
    cycles from interleaving.
    """

    def __init__(self, path: str | Path, *, quota_bytes: int = 0) -> None:
        self._path = Path(path)
        self._quota_bytes = quota_bytes
        self._lock = asyncio.Lock()

        # Health tracking
        self._last_successful_operation: float | None = None
        self._failure_count = 0
        self._total_operations = 0

    @property
    def path(self) -> Path:
        return self._path

    def get_health_status(self) -> dict[str, Any]:
        """Get cache health status."""
        return {
            "backend": "file",
            "path": str(self._path),
            "quota_bytes": self._quota_bytes,
            "last_successful_operation": self._last_successful_operation,
            "failure_count": self._failure_count,
            "total_operations": self._total_operations,
        }

    def _record_success(self) -> None:
        self._last_successful_operation = time.time()
        self._total_operations += 1

    def _record_failure(self) -> None:
        self._failure_count += 1
        self._total_operations += 1

    def _read_all(self) -> dict[str, str]:
        """Read the whole store; a missing file is an empty store."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            self._record_failure()
            logger.warning("Local storage read failed: %s", e, extra={"path": str(self._path)})
            raise StorageError(f"Could not read local storage: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            self._record_failure()
            logger.warning("Local storage file is corrupted", extra={"path": str(self._path)})
            raise StorageError("Local storage file is corrupted") from e

        if not isinstance(data, dict):
            self._record_failure()
            raise StorageError("Local storage file is corrupted")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        encoded = json.dumps(data).encode("utf-8")
        if self._quota_bytes and len(encoded) > self._quota_bytes:
            self._record_failure()
            logger.warning(
                "Local storage quota exceeded",
                extra={"path": str(self._path), "size": len(encoded), "quota_bytes": self._quota_bytes},
            )
            raise StorageError("Local storage quota exceeded")

        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(encoded)
            os.replace(tmp_path, self._path)
        except OSError as e:
            self._record_failure()
            logger.warning("Local storage write failed: %s", e, extra={"path": str(self._path)})
            raise StorageError(f"Could not write local storage: {e}") from e

    async def get(self, key: str) -> str | None:
        """Get the value stored under key, or None if absent.

        Raises:
            StorageError: If the file cannot be read or is corrupted
        """
        async with self._lock:
            value = (await asyncio.to_thread(self._read_all)).get(key)
            self._record_success()
            return value

    async def set(self, key: str, value: str) -> bool:
        """Store a value under key.

        Raises:
            StorageError: If the quota would be exceeded or the file cannot be written
        """
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            data[key] = value
            await asyncio.to_thread(self._write_all, data)
            self._record_success()
            logger.debug("Stored key: %s (%d chars)", key, len(value))
            return True

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys, rewriting the file only if something changed."""
        if not keys:
            return False

        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            removed = [key for key in keys if data.pop(key, None) is not None]
            if removed:
                await asyncio.to_thread(self._write_all, data)
            self._record_success()
            return True

    async def close(self) -> None:
        """Nothing to release; every operation opens and closes the file."""
