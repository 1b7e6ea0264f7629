"""Standalone task store persisted as one JSON blob under a fixed key.

The store owns its task list; callers hold a handle to the instance instead of
sharing module-level state. The blob is loaded once at construction and the
whole list is rewritten after every mutation. A failed write leaves the
in-memory list untouched.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Protocol
from uuid import UUID, uuid1

from pydantic import ValidationError

from taskboard.core.errors import StorageUnavailableError, TaskNotFoundError
from taskboard.core.logging import get_logger
from taskboard.core.time import utcnow
from taskboard.schemas.tasks import TaskRead
from taskboard.services.task_validation import TASK_FIELDS

if TYPE_CHECKING:
    from datetime import datetime

    from taskboard.services.task_query import TaskPredicate
    from taskboard.services.task_validation import TaskDraft

DEFAULT_STORAGE_KEY = "tasks"

logger = get_logger(__name__)


class KeyValueStorage(Protocol):
    """Durable string storage addressed by key."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """In-process key/value storage."""

    def __init__(self, items: Mapping[str, str] | None = None) -> None:
        self.items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value


class JsonFileStorage:
    """Key/value storage kept in a single JSON object file.

    Writes go to a sibling temp file that replaces the original, so a crash
    mid-write never leaves a truncated document behind.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("local_store.file.unreadable", extra={"path": str(self.path)})
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def get_item(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageUnavailableError(str(exc)) from exc


class LocalTaskStore:
    """Task store over a :class:`KeyValueStorage` blob; ids are timestamp-derived."""

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], UUID] = uuid1,
    ) -> None:
        self._storage = storage
        self._key = key
        self._clock = clock
        self._id_factory = id_factory
        self._tasks: list[TaskRead] = self._load()
        logger.info("local_store.ready", extra={"key": key, "total": len(self._tasks)})

    def _load(self) -> list[TaskRead]:
        blob = self._storage.get_item(self._key)
        if not blob:
            return []
        try:
            entries = json.loads(blob)
        except ValueError:
            logger.warning("local_store.blob.corrupt", extra={"key": self._key})
            return []
        if not isinstance(entries, list):
            logger.warning("local_store.blob.not_a_list", extra={"key": self._key})
            return []
        tasks: list[TaskRead] = []
        for entry in entries:
            try:
                tasks.append(TaskRead.model_validate(entry))
            except ValidationError:
                logger.warning("local_store.entry.skipped", extra={"key": self._key})
        return tasks

    def _persist(self, tasks: list[TaskRead]) -> None:
        blob = json.dumps([task.model_dump(mode="json") for task in tasks])
        self._storage.set_item(self._key, blob)
        self._tasks = tasks

    def _index_of(self, task_id: UUID) -> int:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        raise TaskNotFoundError(task_id)

    async def create(self, draft: TaskDraft) -> TaskRead:
        now = self._clock()
        task = TaskRead(id=self._id_factory(), created_at=now, updated_at=now, **draft.as_fields())
        self._persist([*self._tasks, task])
        logger.info("task.created", extra={"task_id": str(task.id), "status": task.status})
        return task

    async def get(self, task_id: UUID) -> TaskRead:
        return self._tasks[self._index_of(task_id)]

    async def update(self, task_id: UUID, changes: Mapping[str, object]) -> TaskRead:
        index = self._index_of(task_id)
        updates = {name: value for name, value in changes.items() if name in TASK_FIELDS}
        updated = self._tasks[index].model_copy(update={**updates, "updated_at": self._clock()})
        tasks = list(self._tasks)
        tasks[index] = updated
        self._persist(tasks)
        logger.info(
            "task.updated",
            extra={"task_id": str(task_id), "fields": ",".join(sorted(updates))},
        )
        return updated

    async def delete(self, task_id: UUID) -> None:
        index = self._index_of(task_id)
        self._persist(self._tasks[:index] + self._tasks[index + 1 :])
        logger.info("task.deleted", extra={"task_id": str(task_id)})

    async def list_tasks(self, predicate: TaskPredicate) -> list[TaskRead]:
        """Return matching tasks, newest-created first (later insert wins ties)."""
        matching = [task for task in reversed(self._tasks) if predicate.matches(task)]
        return sorted(matching, key=lambda task: task.created_at, reverse=True)
