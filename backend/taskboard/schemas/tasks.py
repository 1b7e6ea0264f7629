"""Schemas for task CRUD payloads and responses."""

from __future__ import annotations

from datetime import UTC, date, datetime
from uuid import UUID

from pydantic import field_validator
from sqlmodel import Field, SQLModel
from sqlmodel._compat import SQLModelConfig

RUNTIME_ANNOTATION_TYPES = (date, datetime, UUID)


class TaskCreate(SQLModel):
    """Payload for creating a task.

    Values stay untyped here so that empty or non-text titles, malformed dates,
    and unknown choices reach the task validator and come back as 400 responses.
    """

    model_config = SQLModelConfig(validate_by_name=True)

    title: object | None = None
    description: object | None = None
    priority: object | None = None
    category: object | None = None
    status: object | None = None
    due_date: object | None = Field(default=None, alias="dueDate")


class TaskUpdate(TaskCreate):
    """Partial update payload; only fields present in the body change."""


class TaskRead(SQLModel):
    """Task payload returned by read endpoints and held by board clients."""

    id: UUID
    title: str
    description: str = ""
    priority: str
    category: str
    due_date: date | None = None
    status: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands timestamps back without an offset; they are stored in UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class TaskDeleteResponse(SQLModel):
    """Confirmation returned after a task is deleted."""

    ok: bool = True
    message: str = "Task deleted successfully"
    id: UUID
