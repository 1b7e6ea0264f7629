"""Task model and the constrained values its string columns accept."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from taskboard.core.time import utcnow

RUNTIME_ANNOTATION_TYPES = (date, datetime)

TASK_STATUSES: tuple[str, ...] = ("todo", "doing", "done")
TASK_PRIORITIES: tuple[str, ...] = ("high", "medium", "low")
TASK_CATEGORIES: tuple[str, ...] = ("personal", "professional", "academics")
DATE_FILTERS: tuple[str, ...] = ("today", "previous", "upcoming")

DEFAULT_STATUS = "todo"
DEFAULT_PRIORITY = "medium"
DEFAULT_CATEGORY = "personal"

# Forward-only transitions for the board's "advance" action; done is terminal.
NEXT_STATUS: dict[str, str] = {"todo": "doing", "doing": "done"}


class Task(SQLModel, table=True):
    """A single board task; one row per task."""

    __tablename__ = "tasks"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str
    description: str = Field(default="")
    priority: str = Field(default=DEFAULT_PRIORITY, index=True)
    category: str = Field(default=DEFAULT_CATEGORY, index=True)
    # Day granularity only; normalized at write time.
    due_date: date | None = Field(default=None, index=True)
    status: str = Field(default=DEFAULT_STATUS, index=True)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),  # pyright: ignore[reportArgumentType]
        index=True,
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),  # pyright: ignore[reportArgumentType]
    )
