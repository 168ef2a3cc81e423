"""Task REST endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.config import constants
from src.core.errors import ConflictError, TaskError
from src.core.validation import validate_status
from src.domain.create_models import TaskCreate
from src.domain.task import Task
from src.domain.update_models import TaskUpdate
from src.services import task_service


router = APIRouter(prefix=constants.API_PREFIX, tags=["tasks"])
logger = logging.getLogger(__name__)


def _task_payload(task: Task) -> dict[str, Any]:
    return task.model_dump(mode="json")


def _envelope(*, message: str, data: Any = None, **extra: Any) -> dict[str, Any]:  # noqa: ANN401
    return {"success": True, "message": message, "data": data, **extra}


def _list_envelope(tasks: list[Task], message: str) -> dict[str, Any]:
    return _envelope(
        message="No tasks found" if not tasks else message,
        data=[_task_payload(task) for task in tasks],
        count=len(tasks),
    )


@router.get("")
async def list_tasks() -> dict[str, Any]:
    """Return every task, newest first."""
    tasks = await task_service.list_tasks()
    return _list_envelope(tasks, "Tasks retrieved successfully")


@router.get("/filter/{task_status}")
async def filter_tasks(task_status: str) -> dict[str, Any]:
    """Return tasks with one status, newest first."""
    parsed = validate_status(task_status)
    tasks = await task_service.list_tasks(status=parsed)
    return _list_envelope(tasks, f"{parsed} tasks retrieved successfully")


@router.get("/{task_id}")
async def get_task(task_id: str) -> dict[str, Any]:
    """Return one task."""
    task = await task_service.get_task(task_id=task_id)
    return _envelope(message="Task retrieved successfully", data=_task_payload(task))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(body: TaskCreate) -> dict[str, Any]:
    """Create a task from a title."""
    task = await task_service.create_task(title=body.title)
    return _envelope(message="Task created successfully", data=_task_payload(task))


@router.put("/{task_id}")
async def update_task(task_id: str, body: TaskUpdate) -> dict[str, Any]:
    """Update a task's title and/or status."""
    task, changed = await task_service.update_task(task_id=task_id, title=body.title, status=body.status)
    message = "Task updated successfully" if changed else "No changes made"
    return _envelope(message=message, data=_task_payload(task))


@router.delete("/{task_id}")
async def delete_task(task_id: str) -> dict[str, Any]:
    """Delete a task and return it."""
    task = await task_service.delete_task(task_id=task_id)
    return _envelope(message="Task deleted successfully", data=_task_payload(task))


async def task_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render TaskError subclasses in the task API envelope."""
    if not isinstance(exc, TaskError):
        raise exc

    content: dict[str, Any] = {
        "success": False,
        "message": exc.message,
        "errors": exc.errors,
        "code": exc.code,
    }
    if isinstance(exc, ConflictError) and exc.conflicting_id:
        content["existing_task_id"] = exc.conflicting_id

    log_level = logging.ERROR if exc.status_code >= constants.HTTP_SERVER_ERROR else logging.INFO
    logger.log(
        log_level,
        "task_request_failed",
        extra={"path": request.url.path, "status_code": exc.status_code, "code": exc.code},
    )
    return JSONResponse(status_code=exc.status_code, content=content)


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer malformed request bodies with 400 in the task API envelope."""
    errors = [str(error.get("msg", "Invalid request")) for error in getattr(exc, "errors", list)()]
    logger.info("task_request_malformed", extra={"path": request.url.path, "errors": errors})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Validation error", "errors": errors},
    )


async def http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render framework HTTP errors (unknown routes, bad methods) in the envelope."""
    status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    message = "Route not found" if status_code == status.HTTP_404_NOT_FOUND else str(getattr(exc, "detail", exc))
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


EXCEPTION_HANDLERS = {
    TaskError: task_error_handler,
    RequestValidationError: request_validation_error_handler,
    StarletteHTTPException: http_error_handler,
}
