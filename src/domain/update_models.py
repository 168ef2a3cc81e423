"""Update models for database operations."""

from pydantic import BaseModel


class TaskUpdate(BaseModel):
    """Update payload for a task title and/or status.

    Status stays a plain string so an unknown value is answered with the
    task API's own error message.
    """

    title: str | None = None
    status: str | None = None
