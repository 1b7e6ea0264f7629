"""Task store protocol and the database-backed implementation."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select

from taskboard.core.errors import StorageUnavailableError, TaskNotFoundError
from taskboard.core.logging import get_logger
from taskboard.core.time import utcnow
from taskboard.models.tasks import Task
from taskboard.schemas.tasks import TaskRead
from taskboard.services.task_validation import TASK_FIELDS

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from taskboard.services.task_query import TaskPredicate
    from taskboard.services.task_validation import TaskDraft

logger = get_logger(__name__)


class TaskStore(Protocol):
    """Persistence operations shared by the database, standalone, and HTTP stores."""

    async def create(self, draft: TaskDraft) -> TaskRead: ...

    async def get(self, task_id: UUID) -> TaskRead: ...

    async def update(self, task_id: UUID, changes: Mapping[str, object]) -> TaskRead: ...

    async def delete(self, task_id: UUID) -> None: ...

    async def list_tasks(self, predicate: TaskPredicate) -> list[TaskRead]: ...


def to_task_read(task: Task) -> TaskRead:
    return TaskRead.model_validate(task, from_attributes=True)


class SqlTaskStore:
    """Task store over a SQLModel async session.

    Sole writer of persisted task rows. Driver failures surface as
    :class:`StorageUnavailableError`; the session is rolled back first.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._clock = clock

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("task.store.failed", extra={"operation": operation})
            raise StorageUnavailableError(str(exc)) from exc

    async def _rollback(self) -> None:
        try:
            await self._session.rollback()
        except SQLAlchemyError:
            logger.exception("Failed to rollback task store session.")

    async def _load(self, task_id: UUID) -> Task:
        task = await self._session.get(Task, task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def create(self, draft: TaskDraft) -> TaskRead:
        now = self._clock()
        task = Task(**draft.as_fields(), created_at=now, updated_at=now)
        try:
            with self._guard("create"):
                self._session.add(task)
                await self._session.commit()
                await self._session.refresh(task)
        except StorageUnavailableError:
            await self._rollback()
            raise
        logger.info("task.created", extra={"task_id": str(task.id), "status": task.status})
        return to_task_read(task)

    async def get(self, task_id: UUID) -> TaskRead:
        with self._guard("get"):
            task = await self._load(task_id)
        return to_task_read(task)

    async def update(self, task_id: UUID, changes: Mapping[str, object]) -> TaskRead:
        try:
            with self._guard("update"):
                task = await self._load(task_id)
                for name, value in changes.items():
                    if name in TASK_FIELDS:
                        setattr(task, name, value)
                task.updated_at = self._clock()
                self._session.add(task)
                await self._session.commit()
                await self._session.refresh(task)
        except StorageUnavailableError:
            await self._rollback()
            raise
        logger.info(
            "task.updated",
            extra={"task_id": str(task_id), "fields": ",".join(sorted(changes))},
        )
        return to_task_read(task)

    async def delete(self, task_id: UUID) -> None:
        try:
            with self._guard("delete"):
                task = await self._load(task_id)
                await self._session.delete(task)
                await self._session.commit()
        except StorageUnavailableError:
            await self._rollback()
            raise
        logger.info("task.deleted", extra={"task_id": str(task_id)})

    async def list_tasks(self, predicate: TaskPredicate) -> list[TaskRead]:
        """Return matching tasks, newest-created first."""
        statement = (
            select(Task)
            .where(*predicate.clauses())
            .order_by(col(Task.created_at).desc(), col(Task.id).desc())
        )
        with self._guard("list"):
            rows = (await self._session.exec(statement)).all()
        return [to_task_read(task) for task in rows]
