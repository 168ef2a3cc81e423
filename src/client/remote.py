"""HTTP client for the task API.

Every failure is normalized into a TaskError subclass: transport problems and
timeouts become NetworkError, and error envelopes map by HTTP status.
"""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from src.core.config import constants, settings
from src.core.errors import ConflictError, NetworkError, NotFoundError, ServerError, TaskError, ValidationError
from src.core.logging import span
from src.core.validation import TITLE_ERROR_MESSAGES
from src.domain.task import Task, TaskStatus


logger = logging.getLogger(__name__)

_TITLE_KIND_BY_MESSAGE = {message: kind for kind, message in TITLE_ERROR_MESSAGES.items()}


def _error_from_response(status_code: int, body: Any) -> TaskError:  # noqa: ANN401
    """Build the TaskError matching an error response."""
    envelope = body if isinstance(body, dict) else {}
    message = str(envelope.get("message") or f"Request failed with status {status_code}")
    errors = envelope.get("errors")
    if not isinstance(errors, list):
        errors = None

    if status_code == constants.HTTP_BAD_REQUEST:
        return ValidationError(message, errors=errors, title_error=_TITLE_KIND_BY_MESSAGE.get(message))
    if status_code == constants.HTTP_NOT_FOUND:
        return NotFoundError(message, errors=errors)
    if status_code == constants.HTTP_CONFLICT:
        return ConflictError(message, conflicting_id=envelope.get("existing_task_id"))
    return ServerError(message, errors=errors)


def _parse_task(data: Any) -> Task:  # noqa: ANN401
    try:
        return Task.model_validate(data)
    except PydanticValidationError as e:
        raise ServerError("Task API returned a malformed task") from e


class TaskApiClient:
    """Async client for the four task resource operations (plus single fetch).

    A fresh httpx.AsyncClient is opened per request. Pass ``transport`` to
    route requests somewhere other than the network, such as
    ``httpx.ASGITransport(app=app)`` or ``httpx.MockTransport(handler)``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = constants.API_TIMEOUT_SECONDS,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._transport = transport
        self._timeout = timeout
        self._max_retries = max(1, max_retries if max_retries is not None else settings.remote_max_retries)
        self._retry_delay = retry_delay if retry_delay is not None else settings.remote_retry_delay_seconds

    async def _request(self, method: str, path: str, *, payload: dict[str, Any] | None = None) -> Any:  # noqa: ANN401
        """Send one request and return the envelope's data field."""
        url = f"{constants.API_PREFIX}{path}"
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, json=payload)
        except httpx.TimeoutException as e:
            logger.warning("Task API request timed out", extra={"method": method, "url": url})
            raise NetworkError("Request timed out") from e
        except httpx.TransportError as e:
            logger.warning("Task API unreachable: %s", e, extra={"method": method, "url": url})
            raise NetworkError("Network error. Please check your connection.") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_success:
            if not isinstance(body, dict) or "data" not in body:
                raise ServerError("Task API returned a malformed response")
            return body["data"]

        error = _error_from_response(response.status_code, body)
        logger.info(
            "Task API request failed",
            extra={"method": method, "url": url, "status_code": response.status_code, "code": error.code},
        )
        raise error

    async def list_tasks(self) -> list[Task]:
        """Fetch every task, newest first.

        Listing is idempotent, so network and server failures are retried with
        exponential backoff before the last error is raised.
        """
        with span("task_api.list_tasks"):
            for attempt in range(self._max_retries):
                try:
                    data = await self._request("GET", "")
                    break
                except (NetworkError, ServerError) as e:
                    if attempt >= self._max_retries - 1:
                        raise
                    delay = self._retry_delay * (2**attempt)
                    logger.warning(
                        "Listing tasks failed (attempt %d/%d): %s. Retrying in %.2fs",
                        attempt + 1,
                        self._max_retries,
                        e.message,
                        delay,
                    )
                    await asyncio.sleep(delay)

            if not isinstance(data, list):
                raise ServerError("Task API returned a malformed task list")
            return [_parse_task(item) for item in data]

    async def get_task(self, *, task_id: str) -> Task:
        with span("task_api.get_task"):
            return _parse_task(await self._request("GET", f"/{task_id}"))

    async def create_task(self, *, title: str) -> Task:
        """Create a task; the server trims and validates the title again."""
        with span("task_api.create_task"):
            return _parse_task(await self._request("POST", "", payload={"title": title}))

    async def update_task(
        self,
        *,
        task_id: str,
        title: str | None = None,
        status: TaskStatus | None = None,
    ) -> Task:
        """Send only the fields that change."""
        payload: dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if status is not None:
            payload["status"] = status.value

        with span("task_api.update_task"):
            return _parse_task(await self._request("PUT", f"/{task_id}", payload=payload))

    async def delete_task(self, *, task_id: str) -> Task:
        """Delete a task and return it as it was."""
        with span("task_api.delete_task"):
            return _parse_task(await self._request("DELETE", f"/{task_id}"))
