"""Task CRUD and filtered listing endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from taskboard.api.deps import get_task_store
from taskboard.core.errors import TaskNotFoundError
from taskboard.schemas.errors import ErrorResponse
from taskboard.schemas.tasks import TaskCreate, TaskDeleteResponse, TaskRead, TaskUpdate
from taskboard.services.task_query import build_predicate, parse_filters
from taskboard.services.task_store import SqlTaskStore
from taskboard.services.task_validation import validate_task_changes, validate_task_input

router = APIRouter(prefix="/tasks", tags=["tasks"])
STORE_DEP = Depends(get_task_store)

_NOT_FOUND_RESPONSE = {
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Task not found."},
}
_VALIDATION_RESPONSE = {
    status.HTTP_400_BAD_REQUEST: {
        "model": ErrorResponse,
        "description": "Task payload failed validation.",
    },
}


def _parse_task_id(task_id: str) -> UUID:
    # A malformed id cannot name any task.
    try:
        return UUID(task_id)
    except ValueError as exc:
        raise TaskNotFoundError(task_id) from exc


@router.get(
    "",
    response_model=list[TaskRead],
    responses=_VALIDATION_RESPONSE,
    summary="List Tasks",
)
async def list_tasks(
    store: SqlTaskStore = STORE_DEP,
    task_status: str | None = Query(default=None, alias="status"),
    priority: str | None = None,
    category: str | None = None,
    search: str | None = None,
    date_filter: str | None = Query(default=None, alias="dateFilter"),
    date_filter_snake: str | None = Query(
        default=None,
        alias="date_filter",
        include_in_schema=False,
    ),
) -> list[TaskRead]:
    """List tasks matching every supplied filter, newest-created first."""
    filters = parse_filters(
        {
            "status": task_status,
            "priority": priority,
            "category": category,
            "search": search,
            "date_filter": date_filter_snake,
            "dateFilter": date_filter,
        },
        strict=True,
    )
    return await store.list_tasks(build_predicate(filters))


@router.get(
    "/{task_id}",
    response_model=TaskRead,
    responses=_NOT_FOUND_RESPONSE,
    summary="Get Task",
)
async def get_task(task_id: str, store: SqlTaskStore = STORE_DEP) -> TaskRead:
    """Return a single task by id."""
    return await store.get(_parse_task_id(task_id))


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    responses=_VALIDATION_RESPONSE,
    summary="Create Task",
)
async def create_task(payload: TaskCreate, store: SqlTaskStore = STORE_DEP) -> TaskRead:
    """Create a task; only `title` is required."""
    draft = validate_task_input(payload.model_dump(exclude_unset=True), strict=True)
    return await store.create(draft)


@router.put(
    "/{task_id}",
    response_model=TaskRead,
    responses={**_NOT_FOUND_RESPONSE, **_VALIDATION_RESPONSE},
    summary="Update Task",
)
async def update_task(
    task_id: str,
    payload: TaskUpdate,
    store: SqlTaskStore = STORE_DEP,
) -> TaskRead:
    """Merge the supplied fields into a task; `updated_at` always refreshes."""
    parsed_id = _parse_task_id(task_id)
    changes = validate_task_changes(payload.model_dump(exclude_unset=True), strict=True)
    return await store.update(parsed_id, changes)


@router.delete(
    "/{task_id}",
    response_model=TaskDeleteResponse,
    responses=_NOT_FOUND_RESPONSE,
    summary="Delete Task",
)
async def delete_task(task_id: str, store: SqlTaskStore = STORE_DEP) -> TaskDeleteResponse:
    """Delete a task; a missing id is reported as 404, never as success."""
    parsed_id = _parse_task_id(task_id)
    await store.delete(parsed_id)
    return TaskDeleteResponse(id=parsed_id)
