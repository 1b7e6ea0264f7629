# ruff: noqa: INP001
"""Filter parsing and predicate evaluation, in memory and in SQL."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from taskboard.core.errors import InvalidChoiceError
from taskboard.schemas.tasks import TaskRead
from taskboard.services.task_query import (
    TaskFilters,
    build_predicate,
    filters_for_view,
    parse_filters,
)
from taskboard.services.task_store import SqlTaskStore
from taskboard.services.task_validation import validate_task_input

TODAY = date(2026, 10, 19)


def _task(**fields: object) -> TaskRead:
    now = datetime(2026, 10, 1, 9, 0, tzinfo=UTC)
    values: dict[str, object] = {
        "id": uuid4(),
        "title": "Task",
        "description": "",
        "priority": "medium",
        "category": "personal",
        "status": "todo",
        "due_date": None,
        "created_at": now,
        "updated_at": now,
    }
    values.update(fields)
    return TaskRead.model_validate(values)


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


def test_parse_filters_accepts_camel_case_date_filter() -> None:
    filters = parse_filters({"dateFilter": "Today", "priority": "HIGH"})
    assert filters == TaskFilters(priority="high", date_filter="today")


def test_parse_filters_ignores_blank_and_unknown_keys() -> None:
    filters = parse_filters({"status": "", "search": "   ", "owner": "me"})
    assert filters.is_empty


def test_parse_filters_drops_unknown_choice_when_lenient() -> None:
    assert parse_filters({"category": "hobby"}) == TaskFilters()


def test_parse_filters_rejects_unknown_choice_when_strict() -> None:
    with pytest.raises(InvalidChoiceError) as exc:
        parse_filters({"dateFilter": "yesterday"}, strict=True)
    assert exc.value.field == "dateFilter"


def test_search_is_kept_verbatim_apart_from_trimming() -> None:
    assert parse_filters({"search": "  Spec Doc "}).search == "Spec Doc"


def test_to_query_params_uses_api_names() -> None:
    filters = TaskFilters(status="done", date_filter="upcoming", search="x")
    assert filters.to_query_params() == {"status": "done", "dateFilter": "upcoming", "search": "x"}


@pytest.mark.parametrize(
    ("active_filter", "expected"),
    [
        ("all", TaskFilters()),
        ("high", TaskFilters(priority="high")),
        ("previous", TaskFilters(date_filter="previous")),
        ("academics", TaskFilters(category="academics")),
        ("nonsense", TaskFilters()),
        (None, TaskFilters()),
    ],
)
def test_filters_for_view_selects_one_dimension(
    active_filter: str | None,
    expected: TaskFilters,
) -> None:
    assert filters_for_view(active_filter) == expected


def test_filters_for_view_combines_with_search() -> None:
    assert filters_for_view("low", "  milk ") == TaskFilters(priority="low", search="milk")


def test_empty_predicate_matches_everything() -> None:
    predicate = build_predicate(today=TODAY)
    assert predicate.matches(_task())
    assert predicate.clauses() == []


def test_search_matches_title_or_description_case_insensitively() -> None:
    predicate = build_predicate({"search": "SPEC"}, today=TODAY)
    assert predicate.matches(_task(title="Write spec"))
    assert predicate.matches(_task(title="Other", description="see the Spec doc"))
    assert not predicate.matches(_task(title="Write code", description="tests"))


@pytest.mark.parametrize(
    ("date_filter", "due", "expected"),
    [
        ("today", TODAY, True),
        ("today", TODAY - timedelta(days=1), False),
        ("previous", TODAY - timedelta(days=1), True),
        ("previous", TODAY, False),
        ("upcoming", TODAY + timedelta(days=1), True),
        ("upcoming", TODAY, False),
        ("today", None, False),
        ("previous", None, False),
        ("upcoming", None, False),
    ],
)
def test_date_filters_partition_around_today(
    date_filter: str,
    due: date | None,
    expected: bool,
) -> None:
    predicate = build_predicate({"dateFilter": date_filter}, today=TODAY)
    assert predicate.matches(_task(due_date=due)) is expected


def test_search_folds_non_ascii_case() -> None:
    predicate = build_predicate({"search": "café"}, today=TODAY)
    assert predicate.matches(_task(title="CAFÉ meeting"))
    assert not predicate.matches(_task(title="cafe meeting"))


def test_filters_are_a_conjunction() -> None:
    predicate = build_predicate(
        TaskFilters(priority="high", category="professional", status="doing"),
        today=TODAY,
    )
    assert predicate.matches(_task(priority="high", category="professional", status="doing"))
    assert not predicate.matches(_task(priority="high", category="personal", status="doing"))
    assert not predicate.matches(_task(priority="high", category="professional", status="todo"))


def test_build_predicate_defaults_today_to_local_date() -> None:
    predicate = build_predicate()
    assert isinstance(predicate.today, date)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "filters",
    [
        {},
        {"priority": "high"},
        {"category": "academics"},
        {"status": "done"},
        {"dateFilter": "today"},
        {"dateFilter": "previous"},
        {"dateFilter": "upcoming"},
        {"search": "report"},
        {"search": "50%"},
        {"search": "a_b"},
        {"search": "café"},
        {"search": "CAFÉ"},
        {"search": "étude"},
        {"priority": "low", "dateFilter": "upcoming", "search": "exam"},
    ],
)
async def test_sql_and_in_memory_filtering_agree(filters: dict[str, str]) -> None:
    rows = [
        {"title": "Quarterly report", "priority": "high", "category": "professional"},
        {"title": "Study", "description": "exam prep", "priority": "low",
         "category": "academics", "due_date": TODAY + timedelta(days=3)},
        {"title": "Pay bills", "due_date": TODAY, "status": "done"},
        {"title": "Old REPORT", "due_date": TODAY - timedelta(days=2), "status": "doing"},
        {"title": "Discount 50% off", "priority": "low"},
        {"title": "rename a_b", "description": "not aXb"},
        {"title": "aXb only"},
        {"title": "CAFÉ meeting"},
        {"title": "Review", "description": "Étude in C minor"},
        {"title": "cafe without accent"},
    ]
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            store = SqlTaskStore(session)
            created = [await store.create(validate_task_input(row)) for row in rows]
            predicate = build_predicate(filters, today=TODAY)

            from_sql = {task.id for task in await store.list_tasks(predicate)}
            in_memory = {task.id for task in created if predicate.matches(task)}
    finally:
        await engine.dispose()

    assert from_sql == in_memory
