"""Task input validation and normalization.

Two modes share one code path:

- lenient (default): unknown or missing ``priority``/``category``/``status``
  values fall back to their documented defaults. The board controller and the
  standalone store use this mode.
- strict: unknown choice values raise :class:`InvalidChoiceError`. The REST
  boundary uses this mode so constrained columns never receive stray values.

Empty titles and unparseable due dates are rejected in both modes. Due dates
are normalized to calendar dates so day-level comparisons stay exact.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime

from taskboard.core.errors import (
    EmptyTitleError,
    InvalidChoiceError,
    InvalidDateError,
    TaskValidationError,
)
from taskboard.models.tasks import (
    DEFAULT_CATEGORY,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    TASK_CATEGORIES,
    TASK_PRIORITIES,
    TASK_STATUSES,
)

# Field spellings accepted from browser-style payloads.
FIELD_ALIASES: dict[str, str] = {"text": "title", "dueDate": "due_date"}
TASK_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "priority",
    "category",
    "due_date",
    "status",
)
_CHOICES: dict[str, tuple[tuple[str, ...], str]] = {
    "priority": (TASK_PRIORITIES, DEFAULT_PRIORITY),
    "category": (TASK_CATEGORIES, DEFAULT_CATEGORY),
    "status": (TASK_STATUSES, DEFAULT_STATUS),
}


@dataclass(frozen=True, slots=True)
class TaskDraft:
    """Validated field values for a task that has not been stored yet."""

    title: str
    description: str = ""
    priority: str = DEFAULT_PRIORITY
    category: str = DEFAULT_CATEGORY
    due_date: date | None = None
    status: str = DEFAULT_STATUS

    def as_fields(self) -> dict[str, object]:
        return {name: getattr(self, name) for name in TASK_FIELDS}


def _canonical_keys(raw: Mapping[str, object]) -> dict[str, object]:
    fields: dict[str, object] = {}
    for key, value in raw.items():
        name = FIELD_ALIASES.get(key, key)
        if name not in TASK_FIELDS:
            continue
        # An explicit snake_case key wins over its alias.
        if name in fields and key != name:
            continue
        fields[name] = value
    return fields


def normalize_title(value: object) -> str:
    """Return the trimmed title or raise :class:`EmptyTitleError`."""
    if not isinstance(value, str) or not value.strip():
        raise EmptyTitleError
    return value.strip()


def normalize_description(value: object) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TaskValidationError("Task description must be text.", field="description")
    return value


def normalize_choice(field: str, value: object, *, strict: bool = False) -> str:
    """Resolve a constrained string field to one of its allowed values."""
    choices, default = _CHOICES[field]
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    candidate = value.strip().lower() if isinstance(value, str) else value
    if candidate in choices:
        return str(candidate)
    if strict:
        raise InvalidChoiceError(field, value, choices)
    return default


def parse_due_date(value: object) -> date | None:
    """Parse a due date to day granularity; blank values mean "no due date"."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDateError(value)
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise InvalidDateError(value) from exc


def _normalize_field(name: str, value: object, *, strict: bool) -> object:
    if name == "title":
        return normalize_title(value)
    if name == "description":
        return normalize_description(value)
    if name == "due_date":
        return parse_due_date(value)
    return normalize_choice(name, value, strict=strict)


def validate_task_input(raw: Mapping[str, object], *, strict: bool = False) -> TaskDraft:
    """Validate a full task payload and fill in defaults for missing fields."""
    fields = _canonical_keys(raw)
    return TaskDraft(
        title=normalize_title(fields.get("title")),
        description=normalize_description(fields.get("description")),
        priority=normalize_choice("priority", fields.get("priority"), strict=strict),
        category=normalize_choice("category", fields.get("category"), strict=strict),
        due_date=parse_due_date(fields.get("due_date")),
        status=normalize_choice("status", fields.get("status"), strict=strict),
    )


def validate_task_changes(
    raw: Mapping[str, object],
    *,
    strict: bool = False,
) -> dict[str, object]:
    """Validate only the fields present in a partial update.

    Absent fields are left out of the result so the store keeps their current
    values. An explicit ``None`` due date clears the deadline; ``None`` for a
    choice field means "unchanged".
    """
    return {
        name: _normalize_field(name, value, strict=strict)
        for name, value in _canonical_keys(raw).items()
        if not (name in _CHOICES and value is None)
    }
