"""Group a filtered task list into the three board columns."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Generic, TypeVar

from taskboard.models.tasks import TASK_STATUSES

if TYPE_CHECKING:
    from taskboard.services.task_query import TaskLike, TaskPredicate

T = TypeVar("T", bound="TaskLike")

DEFAULT_HEADING = "ALL TASKS"
HEADINGS: dict[str, str] = {
    "all": DEFAULT_HEADING,
    "high": "HIGH PRIORITY TASKS",
    "medium": "MEDIUM PRIORITY TASKS",
    "low": "LOW PRIORITY TASKS",
    "previous": "PREVIOUS TASKS",
    "today": "TODAY'S TASKS",
    "upcoming": "UPCOMING TASKS",
    "personal": "PERSONAL TASKS",
    "professional": "PROFESSIONAL TASKS",
    "academics": "ACADEMIC TASKS",
}


@dataclass(slots=True)
class TaskBuckets(Generic[T]):
    """Status columns of a filtered view; counts reflect the filtered view only."""

    todo: list[T] = field(default_factory=list)
    doing: list[T] = field(default_factory=list)
    done: list[T] = field(default_factory=list)

    def bucket(self, status: str) -> list[T]:
        if status not in TASK_STATUSES:
            msg = f"Unknown status column: {status}"
            raise KeyError(msg)
        return getattr(self, status)

    @property
    def counts(self) -> dict[str, int]:
        return {status: len(self.bucket(status)) for status in TASK_STATUSES}

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def group_tasks(
    tasks: Iterable[T],
    predicate: TaskPredicate | None = None,
) -> TaskBuckets[T]:
    """Filter ``tasks`` and partition them by status, keeping input order per column.

    Tasks with a status outside the three columns are left out entirely.
    """
    buckets: TaskBuckets[T] = TaskBuckets()
    for task in tasks:
        if predicate is not None and not predicate.matches(task):
            continue
        if task.status not in TASK_STATUSES:
            continue
        buckets.bucket(task.status).append(task)
    return buckets


def is_overdue(task: TaskLike, today: date) -> bool:
    """Past-due marker: unfinished tasks whose due date is before ``today``."""
    return task.due_date is not None and task.due_date < today and task.status != "done"


def heading_for(active_filter: str | None) -> str:
    return HEADINGS.get((active_filter or "").strip().lower(), DEFAULT_HEADING)
