"""Reusable FastAPI dependencies for task routes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends

from taskboard.db.session import get_session
from taskboard.services.task_store import SqlTaskStore

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

SESSION_DEP = Depends(get_session)


def get_task_store(session: AsyncSession = SESSION_DEP) -> SqlTaskStore:
    """Return the database-backed task store bound to the request session."""
    return SqlTaskStore(session)
