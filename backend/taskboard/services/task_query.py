"""Translate requested task filters into one predicate.

A :class:`TaskPredicate` evaluates the same conjunction of filters two ways:
``matches()`` against in-memory task objects and ``clauses()`` as SQL
``WHERE`` conditions. Relative date buckets resolve against the ``today``
captured when the predicate is built, so both renderings agree.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from datetime import date
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import or_
from sqlmodel import col

from taskboard.core.errors import InvalidChoiceError
from taskboard.core.time import local_today
from taskboard.db.functions import unicode_lower
from taskboard.models.tasks import (
    DATE_FILTERS,
    TASK_CATEGORIES,
    TASK_PRIORITIES,
    TASK_STATUSES,
    Task,
)

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

ALL_FILTER = "all"
VIEW_FILTERS: tuple[str, ...] = (ALL_FILTER, *TASK_PRIORITIES, *DATE_FILTERS, *TASK_CATEGORIES)

_FILTER_CHOICES: dict[str, tuple[str, ...]] = {
    "status": TASK_STATUSES,
    "priority": TASK_PRIORITIES,
    "category": TASK_CATEGORIES,
    "date_filter": DATE_FILTERS,
}
_FILTER_KEYS: dict[str, str] = {
    "status": "status",
    "priority": "priority",
    "category": "category",
    "search": "search",
    "dateFilter": "date_filter",
    "date_filter": "date_filter",
}


class TaskLike(Protocol):
    """Attributes a task object needs to be filtered and grouped."""

    title: str
    description: str
    priority: str
    category: str
    status: str
    due_date: date | None


@dataclass(frozen=True, slots=True)
class TaskFilters:
    """Requested filters; ``None`` means "not supplied"."""

    status: str | None = None
    priority: str | None = None
    category: str | None = None
    search: str | None = None
    date_filter: str | None = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, item.name) is None for item in fields(self))

    def to_query_params(self) -> dict[str, str]:
        """Render as REST query parameters, omitting unset filters."""
        params = {
            "status": self.status,
            "priority": self.priority,
            "category": self.category,
            "search": self.search,
            "dateFilter": self.date_filter,
        }
        return {key: value for key, value in params.items() if value is not None}


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_filters(raw: Mapping[str, object], *, strict: bool = False) -> TaskFilters:
    """Build :class:`TaskFilters` from query-style input.

    Unknown keys and blank values are ignored. An unknown choice value raises
    :class:`InvalidChoiceError` in strict mode and is dropped otherwise.
    """
    values: dict[str, str] = {}
    for key, value in raw.items():
        name = _FILTER_KEYS.get(key)
        cleaned = _clean(value)
        if name is None or cleaned is None:
            continue
        choices = _FILTER_CHOICES.get(name)
        if choices is not None:
            cleaned = cleaned.lower()
            if cleaned not in choices:
                if strict:
                    raise InvalidChoiceError(key, value, choices)
                continue
        values[name] = cleaned
    return TaskFilters(**values)


def filters_for_view(active_filter: str | None, search: str | None = None) -> TaskFilters:
    """Map a sidebar filter name plus the search box to filters.

    The sidebar selects at most one dimension: a priority, a date bucket, or a
    category. ``all`` and unrecognized names select nothing.
    """
    name = (active_filter or ALL_FILTER).strip().lower()
    filters = TaskFilters(search=_clean(search))
    if name in TASK_PRIORITIES:
        return replace(filters, priority=name)
    if name in DATE_FILTERS:
        return replace(filters, date_filter=name)
    if name in TASK_CATEGORIES:
        return replace(filters, category=name)
    return filters


def _matches_date(due_date: date | None, date_filter: str, today: date) -> bool:
    if due_date is None:
        return False
    if date_filter == "today":
        return due_date == today
    if date_filter == "previous":
        return due_date < today
    if date_filter == "upcoming":
        return due_date > today
    return True


@dataclass(frozen=True, slots=True)
class TaskPredicate:
    """Conjunction of task filters resolved against a fixed ``today``."""

    filters: TaskFilters
    today: date

    def matches(self, task: TaskLike) -> bool:
        filters = self.filters
        if filters.status is not None and task.status != filters.status:
            return False
        if filters.priority is not None and task.priority != filters.priority:
            return False
        if filters.category is not None and task.category != filters.category:
            return False
        if filters.search is not None:
            needle = filters.search.lower()
            haystacks = (task.title or "", task.description or "")
            if not any(needle in text.lower() for text in haystacks):
                return False
        if filters.date_filter is not None:
            return _matches_date(task.due_date, filters.date_filter, self.today)
        return True

    def clauses(self) -> list[ColumnElement[bool]]:
        filters = self.filters
        conditions: list[ColumnElement[bool]] = []
        if filters.status is not None:
            conditions.append(col(Task.status) == filters.status)
        if filters.priority is not None:
            conditions.append(col(Task.priority) == filters.priority)
        if filters.category is not None:
            conditions.append(col(Task.category) == filters.category)
        if filters.search is not None:
            needle = filters.search.lower()
            conditions.append(
                or_(
                    unicode_lower(col(Task.title)).contains(needle, autoescape=True),
                    unicode_lower(col(Task.description)).contains(needle, autoescape=True),
                ),
            )
        if filters.date_filter == "today":
            conditions.append(col(Task.due_date) == self.today)
        elif filters.date_filter == "previous":
            conditions.append(col(Task.due_date) < self.today)
        elif filters.date_filter == "upcoming":
            conditions.append(col(Task.due_date) > self.today)
        return conditions


def build_predicate(
    filters: TaskFilters | Mapping[str, object] | None = None,
    *,
    today: date | None = None,
) -> TaskPredicate:
    """Return the predicate for ``filters``; ``today`` defaults to the local date."""
    if filters is None:
        filters = TaskFilters()
    elif not isinstance(filters, TaskFilters):
        filters = parse_filters(filters)
    return TaskPredicate(filters=filters, today=today or local_today())
