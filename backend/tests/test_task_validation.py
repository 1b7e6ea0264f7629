# ruff: noqa: INP001
"""Task input validation and normalization tests."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from taskboard.core.errors import (
    EmptyTitleError,
    InvalidChoiceError,
    InvalidDateError,
    TaskValidationError,
)
from taskboard.services.task_validation import (
    TaskDraft,
    parse_due_date,
    validate_task_changes,
    validate_task_input,
)


def test_minimal_input_gets_documented_defaults() -> None:
    draft = validate_task_input({"title": "  Write spec  "})

    assert draft == TaskDraft(
        title="Write spec",
        description="",
        priority="medium",
        category="personal",
        due_date=None,
        status="todo",
    )


@pytest.mark.parametrize("title", ["", "   ", "\t\n", None, 42])
def test_empty_or_missing_title_is_rejected(title: object) -> None:
    with pytest.raises(EmptyTitleError) as exc:
        validate_task_input({"title": title})
    assert exc.value.field == "title"
    assert isinstance(exc.value, TaskValidationError)


def test_missing_title_key_is_rejected() -> None:
    with pytest.raises(EmptyTitleError):
        validate_task_input({"priority": "high"})


def test_unknown_choices_fall_back_to_defaults_in_lenient_mode() -> None:
    draft = validate_task_input(
        {"title": "x", "priority": "urgent", "category": "hobby", "status": "blocked"},
    )
    assert (draft.priority, draft.category, draft.status) == ("medium", "personal", "todo")


def test_unknown_choice_is_rejected_in_strict_mode() -> None:
    with pytest.raises(InvalidChoiceError) as exc:
        validate_task_input({"title": "x", "priority": "urgent"}, strict=True)
    assert exc.value.field == "priority"
    assert "urgent" in exc.value.message


def test_choice_values_are_case_insensitive() -> None:
    draft = validate_task_input(
        {"title": "x", "priority": " HIGH ", "category": "Professional", "status": "Doing"},
        strict=True,
    )
    assert (draft.priority, draft.category, draft.status) == ("high", "professional", "doing")


def test_text_and_camel_case_aliases_are_accepted() -> None:
    draft = validate_task_input({"text": "Buy milk", "dueDate": "2026-10-20"})
    assert draft.title == "Buy milk"
    assert draft.due_date == date(2026, 10, 20)


def test_snake_case_key_wins_over_alias() -> None:
    draft = validate_task_input({"dueDate": "2026-01-01", "due_date": "2026-02-02", "title": "x"})
    assert draft.due_date == date(2026, 2, 2)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, None),
        ("", None),
        ("   ", None),
        ("2026-10-19", date(2026, 10, 19)),
        ("2026-10-19T15:30:00", date(2026, 10, 19)),
        ("2026-10-19T15:30:00Z", date(2026, 10, 19)),
        (date(2026, 1, 2), date(2026, 1, 2)),
        (datetime(2026, 1, 2, 23, 59), date(2026, 1, 2)),
    ],
)
def test_parse_due_date_normalizes_to_day(raw: object, expected: date | None) -> None:
    assert parse_due_date(raw) == expected


@pytest.mark.parametrize("raw", ["tomorrow", "2026-13-40", "19/10/2026", 20261019])
def test_parse_due_date_rejects_unparseable_values(raw: object) -> None:
    with pytest.raises(InvalidDateError) as exc:
        parse_due_date(raw)
    assert exc.value.field == "due_date"


def test_non_text_description_is_rejected() -> None:
    with pytest.raises(TaskValidationError) as exc:
        validate_task_input({"title": "x", "description": ["a"]})
    assert exc.value.field == "description"


def test_changes_only_include_supplied_fields() -> None:
    assert validate_task_changes({"status": "done"}) == {"status": "done"}
    assert validate_task_changes({}) == {}


def test_changes_ignore_unknown_keys() -> None:
    assert validate_task_changes({"id": "abc", "owner": "me", "priority": "low"}) == {
        "priority": "low",
    }


def test_changes_allow_clearing_due_date() -> None:
    assert validate_task_changes({"due_date": None}) == {"due_date": None}


def test_changes_treat_null_choice_as_unchanged() -> None:
    assert validate_task_changes({"status": None, "title": "Renamed"}) == {"title": "Renamed"}


def test_changes_reject_blank_title() -> None:
    with pytest.raises(EmptyTitleError):
        validate_task_changes({"title": "   "})


def test_changes_reject_invalid_status_in_strict_mode() -> None:
    with pytest.raises(InvalidChoiceError):
        validate_task_changes({"status": "archived"}, strict=True)
