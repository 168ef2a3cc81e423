"""Redis key-value store for the client's local cache mirror."""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from functools import wraps
from typing import Any, TypeVar

from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from src.core.config import Constants, settings
from src.core.errors import StorageError


logger = logging.getLogger(__name__)

# Type variable for generic retry decorator
T = TypeVar("T")


def with_retry(
    max_retries: int = Constants.REDIS_MAX_RETRIES, base_delay: float = Constants.REDIS_RETRY_BASE_DELAY
) -> Callable[[Callable[..., Coroutine[Any, Any, T]]], Callable[..., Coroutine[Any, Any, T]]]:
    """Decorator to retry async Redis calls with exponential backoff.

    Args:
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds for exponential backoff

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., Coroutine[Any, Any, T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:  # noqa: ANN401
            last_exception: RedisError | None = None
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except RedisError as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Redis operation failed (attempt %d/%d): %s. Retrying in %.2fs",
                            attempt + 1,
                            max_retries,
                            e,
                            delay,
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error("Redis operation failed after %d attempts: %s", max_retries, e)
            raise last_exception  # type: ignore[misc]

        return wrapper

    return decorator


class RedisCache:
    """Async Redis key-value store with connection pooling.

    Failures that survive the retries are raised as StorageError so the caller
    can degrade to in-memory operation.
    """

    def __init__(self, url: str | None = None, *, client: Redis | None = None) -> None:
        """Initialize from a URL (defaults to REDIS_URL) or an existing client."""
        self._url = url or settings.redis_url
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = client

        # Health tracking
        self._last_successful_operation: datetime | None = None
        self._failure_count = 0
        self._total_operations = 0

        if self._client is None and self._url:
            # Create connection pool for efficient connection reuse
            self._pool = ConnectionPool.from_url(
                self._url,
                decode_responses=True,
                max_connections=Constants.REDIS_MAX_CONNECTIONS,
            )
            self._client = Redis(connection_pool=self._pool)
            logger.info("Redis cache initialized with URL: %s", self._url)
        elif self._client is None:
            logger.info("Redis URL not configured. Redis cache unavailable.")

    @property
    def is_available(self) -> bool:
        """Check if a Redis client is configured."""
        return self._client is not None

    def get_health_status(self) -> dict[str, Any]:
        """Get Redis health status."""
        return {
            "backend": "redis",
            "connected": self.is_available,
            "last_successful_operation": self._last_successful_operation.isoformat()
            if self._last_successful_operation
            else None,
            "failure_count": self._failure_count,
            "total_operations": self._total_operations,
        }

    def _record_success(self) -> None:
        self._last_successful_operation = datetime.now(UTC)
        self._total_operations += 1

    def _record_failure(self) -> None:
        self._failure_count += 1
        self._total_operations += 1

    def _require_client(self) -> Redis:
        if self._client is None:
            raise StorageError("Redis cache is not configured")
        return self._client

    async def get(self, key: str) -> str | None:
        """Get value from Redis, or None if the key does not exist.

        Raises:
            StorageError: If Redis is not configured or keeps failing
        """
        client = self._require_client()

        @with_retry()
        async def _get() -> str | None:
            return await client.get(key)

        try:
            value = await _get()
        except RedisError as e:
            self._record_failure()
            logger.warning("Redis GET error for key %s: %s", key, e)
            raise StorageError(f"Could not read local cache from Redis: {e}") from e

        self._record_success()
        if value is not None:
            logger.debug("Cache hit for key: %s", key)
        return value

    async def set(self, key: str, value: str) -> bool:
        """Store value under key without expiry.

        Raises:
            StorageError: If Redis is not configured or keeps failing
        """
        client = self._require_client()

        @with_retry()
        async def _set() -> None:
            await client.set(key, value)

        try:
            await _set()
        except RedisError as e:
            self._record_failure()
            logger.warning("Redis SET error for key %s: %s", key, e)
            raise StorageError(f"Could not write local cache to Redis: {e}") from e

        self._record_success()
        logger.debug("Cached key: %s (%d chars)", key, len(value))
        return True

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys from Redis.

        Raises:
            StorageError: If Redis is not configured or keeps failing
        """
        if not keys:
            return False

        client = self._require_client()

        @with_retry()
        async def _delete() -> None:
            await client.delete(*keys)

        try:
            await _delete()
        except RedisError as e:
            self._record_failure()
            logger.warning("Redis DELETE error: %s", e)
            raise StorageError(f"Could not clear local cache in Redis: {e}") from e

        self._record_success()
        logger.debug("Deleted %d cache key(s)", len(keys))
        return True

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            logger.info("Redis cache closed")
