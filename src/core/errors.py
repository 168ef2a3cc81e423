"""Task error taxonomy and user-facing error classification."""

from enum import Enum, StrEnum

from pydantic import BaseModel


class TitleErrorKind(StrEnum):
    """Why a task title was rejected."""

    REQUIRED = "required"
    EMPTY = "empty"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    NO_ALPHANUMERIC = "no_alphanumeric"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_CONFLICT = "ERR_CONFLICT"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_EMPTY_SELECTION = "ERR_EMPTY_SELECTION"
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"
    ERR_SERVER_ERROR = "ERR_SERVER_ERROR"
    ERR_STORAGE = "ERR_STORAGE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class TaskError(Exception):
    """Base class for every recoverable task error.

    Carries the HTTP status the REST API answers with and the error code the
    client reports, so both sides of the wire classify failures the same way.
    """

    status_code: int = 500
    code: str = ErrorCode.ERR_UNKNOWN

    def __init__(self, message: str, *, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or [message]


class ValidationError(TaskError):
    """Client-correctable input (bad title, bad status, malformed id)."""

    status_code = 400
    code = ErrorCode.ERR_VALIDATION

    def __init__(
        self,
        message: str,
        *,
        errors: list[str] | None = None,
        title_error: TitleErrorKind | None = None,
    ) -> None:
        super().__init__(message, errors=errors)
        self.title_error = title_error


class ConflictError(TaskError):
    """Another task already uses the title."""

    status_code = 409
    code = ErrorCode.ERR_CONFLICT

    def __init__(self, message: str, *, conflicting_id: str | None = None) -> None:
        super().__init__(message)
        self.conflicting_id = conflicting_id


class NotFoundError(TaskError):
    """The task id does not exist (stale or never created)."""

    status_code = 404
    code = ErrorCode.ERR_NOT_FOUND


class EmptySelectionError(TaskError):
    """A bulk operation was requested with nothing selected."""

    status_code = 400
    code = ErrorCode.ERR_EMPTY_SELECTION


class NetworkError(TaskError):
    """The remote could not be reached or did not answer in time."""

    status_code = 503
    code = ErrorCode.ERR_NETWORK_ERROR


class ServerError(TaskError):
    """The remote answered with a failure it did not classify."""

    status_code = 500
    code = ErrorCode.ERR_SERVER_ERROR


class StorageError(TaskError):
    """The local cache could not be read or written. Never fatal."""

    status_code = 500
    code = ErrorCode.ERR_STORAGE


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_SUGGESTIONS: dict[str, tuple[str, ErrorSeverity]] = {
    ErrorCode.ERR_VALIDATION: ("Check the title and try again.", ErrorSeverity.LOW),
    ErrorCode.ERR_CONFLICT: ("Pick a different title or edit the existing task.", ErrorSeverity.LOW),
    ErrorCode.ERR_NOT_FOUND: ("The task may have been deleted. Reload the list.", ErrorSeverity.LOW),
    ErrorCode.ERR_EMPTY_SELECTION: ("Select at least one task first.", ErrorSeverity.LOW),
    ErrorCode.ERR_NETWORK_ERROR: ("Please check your connection and try again.", ErrorSeverity.MEDIUM),
    ErrorCode.ERR_SERVER_ERROR: ("Please try again later.", ErrorSeverity.HIGH),
    ErrorCode.ERR_STORAGE: ("Offline copies are not being saved. Local storage might be full.", ErrorSeverity.MEDIUM),
}

_NETWORK_PHRASES = ("connection", "timeout", "timed out", "network", "unreachable")
_STORAGE_PHRASES = ("quota", "storage")


def classify_error_with_response(exception: BaseException) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Task errors map by their code. Anything else is matched on its type and
    message, falling back to an unknown error.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, TaskError):
        suggestion, severity = _SUGGESTIONS.get(
            exception.code, ("Please try again later.", ErrorSeverity.MEDIUM)
        )
        return ErrorResponse(
            code=exception.code,
            message=exception.message,
            suggestion=suggestion,
            severity=severity,
        )

    error_str = str(exception).lower()

    if isinstance(exception, ConnectionError | TimeoutError) or any(p in error_str for p in _NETWORK_PHRASES):
        suggestion, severity = _SUGGESTIONS[ErrorCode.ERR_NETWORK_ERROR]
        return ErrorResponse(
            code=ErrorCode.ERR_NETWORK_ERROR,
            message="Network error occurred.",
            suggestion=suggestion,
            severity=severity,
        )

    if isinstance(exception, OSError) or any(p in error_str for p in _STORAGE_PHRASES):
        suggestion, severity = _SUGGESTIONS[ErrorCode.ERR_STORAGE]
        return ErrorResponse(
            code=ErrorCode.ERR_STORAGE,
            message="Storage error occurred.",
            suggestion=suggestion,
            severity=severity,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, reload the task list.",
        severity=ErrorSeverity.MEDIUM,
    )
