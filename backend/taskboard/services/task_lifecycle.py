"""Board controller: task mutations, the status workflow, and view refreshes.

Every mutation goes through the store, then recomputes the visible board and
hands it to the ``render`` callback. Failures never reach ``render``; the
caller gets a user-facing message through ``notify`` and the last rendered
view stays as it was.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from taskboard.core.config import settings
from taskboard.core.errors import (
    StorageUnavailableError,
    TaskNotFoundError,
    TaskValidationError,
)
from taskboard.core.logging import get_logger
from taskboard.core.time import local_today
from taskboard.models.tasks import DEFAULT_STATUS, NEXT_STATUS
from taskboard.services.task_grouping import group_tasks, heading_for, is_overdue
from taskboard.services.task_query import ALL_FILTER, build_predicate, filters_for_view
from taskboard.services.task_validation import validate_task_changes, validate_task_input

if TYPE_CHECKING:
    from taskboard.schemas.tasks import TaskRead
    from taskboard.services.task_grouping import TaskBuckets
    from taskboard.services.task_store import TaskStore

NOT_FOUND_MESSAGE = "That task no longer exists. The board has been refreshed."

logger = get_logger(__name__)


def search_debounce_seconds() -> float:
    """Quiet period before a search refresh, from `SEARCH_DEBOUNCE_MS`."""
    return settings.search_debounce_ms / 1000


@dataclass(frozen=True, slots=True)
class ViewState:
    """UI state the board depends on: sidebar filter, search box, task being edited."""

    active_filter: str = ALL_FILTER
    search: str = ""
    editing_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class BoardView:
    """Everything the rendering layer needs to draw the board."""

    buckets: TaskBuckets[TaskRead]
    heading: str
    state: ViewState
    overdue_ids: frozenset[UUID] = field(default_factory=frozenset)

    @property
    def counts(self) -> dict[str, int]:
        return self.buckets.counts


class Debouncer:
    """Run a coroutine once calls have been quiet for ``delay`` seconds."""

    def __init__(self, delay: float | None = None) -> None:
        self.delay = search_debounce_seconds() if delay is None else delay
        self._pending: asyncio.Task[None] | None = None

    def __call__(self, action: Callable[[], Awaitable[object]]) -> asyncio.Task[None]:
        self.cancel()
        self._pending = asyncio.create_task(self._run(action))
        return self._pending

    async def _run(self, action: Callable[[], Awaitable[object]]) -> None:
        await asyncio.sleep(self.delay)
        await action()

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()


class TaskBoardController:
    """Orchestrates add/edit/advance/delete and keeps the rendered board current."""

    def __init__(
        self,
        store: TaskStore,
        *,
        render: Callable[[BoardView], None],
        notify: Callable[[str], None] | None = None,
        today: Callable[[], date] = local_today,
        debounce_seconds: float | None = None,
    ) -> None:
        self.store = store
        self.state = ViewState()
        self.view: BoardView | None = None
        self._render = render
        self._notify = notify or (lambda _message: None)
        self._today = today
        self._search_debouncer = Debouncer(debounce_seconds)
        self._refresh_seq = 0

    # ---- view state ----

    async def refresh(self) -> BoardView | None:
        """Fetch the filtered task list and re-render.

        Returns ``None`` when the fetch failed or a newer refresh superseded
        this one; its response is discarded in both cases.
        """
        self._refresh_seq += 1
        seq = self._refresh_seq
        state = self.state
        today = self._today()
        predicate = build_predicate(
            filters_for_view(state.active_filter, state.search),
            today=today,
        )
        try:
            tasks = await self.store.list_tasks(predicate)
        except TaskValidationError as err:
            self._report(err)
            return None
        except StorageUnavailableError:
            logger.exception("board.refresh.failed", extra={"seq": seq})
            self._notify(StorageUnavailableError().message)
            return None
        if seq != self._refresh_seq:
            logger.debug("board.refresh.stale", extra={"seq": seq, "latest": self._refresh_seq})
            return None

        # The store already applied the predicate.
        buckets = group_tasks(tasks)
        view = BoardView(
            buckets=buckets,
            heading=heading_for(state.active_filter),
            state=state,
            overdue_ids=frozenset(task.id for task in tasks if is_overdue(task, today)),
        )
        self.view = view
        self._render(view)
        return view

    async def set_filter(self, active_filter: str) -> BoardView | None:
        self.state = replace(self.state, active_filter=active_filter or ALL_FILTER)
        return await self.refresh()

    def set_search(self, search: str) -> asyncio.Task[None]:
        """Record the search box value; the refresh runs after typing pauses."""
        self.state = replace(self.state, search=search)
        return self._search_debouncer(self.refresh)

    def begin_edit(self, task_id: UUID) -> None:
        self.state = replace(self.state, editing_id=task_id)

    def cancel_edit(self) -> None:
        self.state = replace(self.state, editing_id=None)

    # ---- mutations ----

    def _report(self, err: TaskValidationError | TaskNotFoundError) -> None:
        if isinstance(err, TaskNotFoundError):
            self._notify(NOT_FOUND_MESSAGE)
        else:
            self._notify(err.message)

    def _report_storage_failure(self, action: str) -> None:
        logger.exception("board.mutation.failed", extra={"action": action})
        self._notify(StorageUnavailableError().message)

    async def add_task(self, fields: Mapping[str, object]) -> TaskRead | None:
        """Validate and create a task; new tasks always start in ``todo``."""
        try:
            draft = replace(validate_task_input(fields), status=DEFAULT_STATUS)
        except TaskValidationError as err:
            self._report(err)
            return None
        try:
            task = await self.store.create(draft)
        except TaskValidationError as err:
            self._report(err)
            return None
        except StorageUnavailableError:
            self._report_storage_failure("add")
            return None
        await self.refresh()
        return task

    async def edit_task(self, task_id: UUID, fields: Mapping[str, object]) -> TaskRead | None:
        """Apply a field-level edit; may set ``status`` directly as an override."""
        try:
            changes = validate_task_changes(fields)
        except TaskValidationError as err:
            self._report(err)
            return None
        try:
            task = await self.store.update(task_id, changes)
        except TaskValidationError as err:
            self._report(err)
            return None
        except TaskNotFoundError as err:
            self._report(err)
            await self.refresh()
            return None
        except StorageUnavailableError:
            self._report_storage_failure("edit")
            return None
        if self.state.editing_id == task_id:
            self.cancel_edit()
        await self.refresh()
        return task

    async def save_form(self, fields: Mapping[str, object]) -> TaskRead | None:
        """Submit the task form: edit when a task is being edited, add otherwise."""
        if self.state.editing_id is not None:
            return await self.edit_task(self.state.editing_id, fields)
        return await self.add_task(fields)

    async def advance(self, task_id: UUID) -> TaskRead | None:
        """Move a task one step along todo -> doing -> done; done stays put."""
        try:
            task = await self.store.get(task_id)
            next_status = NEXT_STATUS.get(task.status)
            if next_status is None:
                return task
            task = await self.store.update(task_id, {"status": next_status})
        except TaskValidationError as err:
            self._report(err)
            return None
        except TaskNotFoundError as err:
            self._report(err)
            await self.refresh()
            return None
        except StorageUnavailableError:
            self._report_storage_failure("advance")
            return None
        await self.refresh()
        return task

    async def delete_task(self, task_id: UUID, *, confirmed: bool) -> bool:
        """Delete a task once the caller has confirmed; returns whether it was deleted."""
        if not confirmed:
            return False
        try:
            await self.store.delete(task_id)
        except TaskNotFoundError as err:
            self._report(err)
            await self.refresh()
            return False
        except StorageUnavailableError:
            self._report_storage_failure("delete")
            return False
        if self.state.editing_id == task_id:
            self.cancel_edit()
        await self.refresh()
        return True
