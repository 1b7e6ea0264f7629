# ruff: noqa: INP001
"""Integration tests for the task REST API."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from taskboard.api.deps import SESSION_DEP, get_task_store
from taskboard.core.error_handling import REQUEST_ID_HEADER
from taskboard.core.time import local_today
from taskboard.db.session import get_session
from taskboard.main import create_app
from taskboard.services.task_store import SqlTaskStore

BASE = "/api/v1/tasks"


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


def _ticking_clock() -> Callable[[], datetime]:
    current = datetime(2026, 10, 19, 8, 0, tzinfo=UTC)

    def _now() -> datetime:
        nonlocal current
        current += timedelta(seconds=1)
        return current

    return _now


def _build_test_app(session_maker: async_sessionmaker[AsyncSession]) -> FastAPI:
    app = create_app()
    clock = _ticking_clock()

    async def _override_get_session() -> AsyncSession:
        async with session_maker() as session:
            yield session

    def _override_get_task_store(session: AsyncSession = SESSION_DEP) -> SqlTaskStore:
        return SqlTaskStore(session, clock=clock)

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_task_store] = _override_get_task_store
    return app


async def _client(engine: AsyncEngine) -> AsyncClient:
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    app = _build_test_app(session_maker)
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_create_returns_201_with_defaults() -> None:
    engine = await _make_engine()
    try:
        async with await _client(engine) as client:
            resp = await client.post(BASE, json={"title": "Write spec"})
    finally:
        await engine.dispose()

    assert resp.status_code == 201
    body = resp.json()
    assert body["title"] == "Write spec"
    assert body["description"] == ""
    assert body["priority"] == "medium"
    assert body["category"] == "personal"
    assert body["status"] == "todo"
    assert body["due_date"] is None
    assert body["id"]
    assert body["created_at"] == body["updated_at"]


@pytest.mark.asyncio
async def test_create_accepts_camel_case_due_date() -> None:
    engine = await _make_engine()
    try:
        async with await _client(engine) as client:
            resp = await client.post(BASE, json={"title": "x", "dueDate": "2026-10-20T00:00:00Z"})
    finally:
        await engine.dispose()

    assert resp.status_code == 201
    assert resp.json()["due_date"] == "2026-10-20"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "field"),
    [
        ({"title": "   "}, "title"),
        ({}, "title"),
        ({"title": "x", "priority": "urgent"}, "priority"),
        ({"title": "x", "status": "blocked"}, "status"),
        ({"title": "x", "due_date": "next week"}, "due_date"),
        ({"title": 123}, "title"),
        ({"title": "x", "dueDate": 20261019}, "due_date"),
        ({"title": "x", "priority": 5}, "priority"),
        ({"title": "x", "description": ["not", "text"]}, "description"),
    ],
)
async def test_create_rejects_invalid_payload_with_400(
    payload: dict[str, object],
    field: str,
) -> None:
    engine = await _make_engine()
    try:
        async with await _client(engine) as client:
            resp = await client.post(BASE, json=payload)
            listed = await client.get(BASE)
    finally:
        await engine.dispose()

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "validation_error"
    assert body["field"] == field
    assert isinstance(body["detail"], str)
    assert body["request_id"] == resp.headers[REQUEST_ID_HEADER]
    assert listed.json() == []


@pytest.mark.asyncio
async def test_create_rejects_non_object_body_with_422() -> None:
    engine = await _make_engine()
    try:
        async with await _client(engine) as client:
            resp = await client.post(BASE, json=["not", "an", "object"])
    finally:
        await engine.dispose()

    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_update_delete_round_trip() -> None:
    engine = await _make_engine()
    try:
        async with await _client(engine) as client:
            created = (await client.post(BASE, json={"title": "Study", "category": "academics"})).json()
            task_url = f"{BASE}/{created['id']}"

            fetched = await client.get(task_url)
            updated = await client.put(task_url, json={"status": "doing"})
            deleted = await client.delete(task_url)
            after = await client.get(task_url)
    finally:
        await engine.dispose()

    assert fetched.status_code == 200
    assert fetched.json() == created

    assert updated.status_code == 200
    assert updated.json()["status"] == "doing"
    assert updated.json()["category"] == "academics"
    assert updated.json()["created_at"] == created["created_at"]

    assert deleted.status_code == 200
    assert deleted.json() == {
        "ok": True,
        "message": "Task deleted successfully",
        "id": created["id"],
    }
    assert after.status_code == 404


@pytest.mark.asyncio
async def test_update_can_clear_due_date_and_rejects_blank_title() -> None:
    engine = await _make_engine()
    try:
        async with await _client(engine) as client:
            created = (await client.post(BASE, json={"title": "x", "due_date": "2026-11-01"})).json()
            task_url = f"{BASE}/{created['id']}"
            cleared = await client.put(task_url, json={"dueDate": None})
            blank = await client.put(task_url, json={"title": ""})
            numeric = await client.put(task_url, json={"dueDate": 7})
    finally:
        await engine.dispose()

    assert cleared.status_code == 200
    assert cleared.json()["due_date"] is None
    assert blank.status_code == 400
    assert blank.json()["field"] == "title"
    assert numeric.status_code == 400
    assert numeric.json()["field"] == "due_date"


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
@pytest.mark.parametrize("task_id", [str(uuid4()), "not-a-uuid"])
async def test_unknown_task_ids_return_404(method: str, task_id: str) -> None:
    engine = await _make_engine()
    try:
        async with await _client(engine) as client:
            kwargs = {"json": {"title": "x"}} if method == "PUT" else {}
            resp = await client.request(method, f"{BASE}/{task_id}", **kwargs)
    finally:
        await engine.dispose()

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Task not found"
    assert resp.json()["code"] == "not_found"


@pytest.mark.asyncio
async def test_list_filters_and_orders_newest_first() -> None:
    today = local_today()
    engine = await _make_engine()
    try:
        async with await _client(engine) as client:
            for payload in (
                {"title": "Old report", "due_date": (today - timedelta(days=3)).isoformat()},
                {"title": "Due today", "due_date": today.isoformat(), "priority": "high"},
                {"title": "Exam", "description": "Report due", "category": "academics",
                 "due_date": (today + timedelta(days=5)).isoformat()},
                {"title": "No date", "priority": "high"},
            ):
                assert (await client.post(BASE, json=payload)).status_code == 201

            everything = await client.get(BASE)
            high = await client.get(BASE, params={"priority": "high"})
            today_only = await client.get(BASE, params={"dateFilter": "today"})
            previous = await client.get(BASE, params={"date_filter": "previous"})
            upcoming = await client.get(BASE, params={"dateFilter": "upcoming"})
            search = await client.get(BASE, params={"search": "REPORT"})
            combined = await client.get(BASE, params={"search": "report", "category": "academics"})
            blank = await client.get(BASE, params={"search": "", "priority": ""})
    finally:
        await engine.dispose()

    def titles(resp: object) -> list[str]:
        return [task["title"] for task in resp.json()]  # type: ignore[attr-defined]

    assert titles(everything) == ["No date", "Exam", "Due today", "Old report"]
    assert titles(high) == ["No date", "Due today"]
    assert titles(today_only) == ["Due today"]
    assert titles(previous) == ["Old report"]
    assert titles(upcoming) == ["Exam"]
    assert titles(search) == ["Exam", "Old report"]
    assert titles(combined) == ["Exam"]
    assert titles(blank) == titles(everything)


@pytest.mark.asyncio
async def test_list_rejects_unknown_filter_values() -> None:
    engine = await _make_engine()
    try:
        async with await _client(engine) as client:
            resp = await client.get(BASE, params={"dateFilter": "someday"})
    finally:
        await engine.dispose()

    assert resp.status_code == 400
    assert resp.json()["field"] == "dateFilter"


@pytest.mark.asyncio
async def test_health_probes() -> None:
    engine = await _make_engine()
    try:
        async with await _client(engine) as client:
            health = await client.get("/health")
            healthz = await client.get("/healthz")
    finally:
        await engine.dispose()

    assert health.json() == {"ok": True}
    assert healthz.json() == {"ok": True}


@pytest.mark.asyncio
async def test_readyz_reports_database_state(monkeypatch: pytest.MonkeyPatch) -> None:
    from taskboard import main

    engine = await _make_engine()
    try:
        async with await _client(engine) as client:

            async def _up() -> bool:
                return True

            async def _down() -> bool:
                return False

            monkeypatch.setattr(main, "check_db", _up)
            ready = await client.get("/readyz")
            monkeypatch.setattr(main, "check_db", _down)
            not_ready = await client.get("/readyz")
    finally:
        await engine.dispose()

    assert ready.status_code == 200
    assert ready.json() == {"ok": True, "database": "connected"}
    assert not_ready.status_code == 503
    assert not_ready.json() == {"ok": False, "database": "disconnected"}
