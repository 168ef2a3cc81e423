"""Pydantic models for creating records in database."""

from pydantic import BaseModel, Field


class TaskCreate(BaseModel):
    """Request body for creating a task.

    The title is optional here so a missing title reaches the shared title
    validator and is reported like every other title error.
    """

    title: str | None = Field(default=None, description="Task title, validated and trimmed server-side")
