"""Structured error payload schemas used by API responses."""

from __future__ import annotations

from pydantic import Field
from sqlmodel import SQLModel


class ErrorResponse(SQLModel):
    """Standardized error payload returned by every failing endpoint."""

    detail: str | dict[str, object] | list[object] = Field(
        description="Human-readable error description or validation error list.",
        examples=["Task not found", "Task title is required."],
    )
    request_id: str | None = Field(
        default=None,
        description="Request correlation identifier injected by middleware.",
    )
    code: str | None = Field(
        default=None,
        description="Optional machine-readable error code.",
        examples=["validation_error", "not_found", "storage_unavailable"],
    )
    field: str | None = Field(
        default=None,
        description="Task field that failed validation, when applicable.",
        examples=["title", "due_date"],
    )
    retryable: bool | None = Field(
        default=None,
        description="Whether a client should retry the call after a transient failure.",
    )
