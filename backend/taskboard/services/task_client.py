"""Task store backed by the REST API (server-filtered board variant)."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import TYPE_CHECKING, Any, Self
from uuid import UUID

import httpx

from taskboard.core.errors import (
    StorageUnavailableError,
    TaskNotFoundError,
    TaskValidationError,
)
from taskboard.core.logging import get_logger
from taskboard.schemas.tasks import TaskRead

if TYPE_CHECKING:
    from types import TracebackType

    from taskboard.services.task_query import TaskPredicate
    from taskboard.services.task_validation import TaskDraft

DEFAULT_BASE_PATH = "/api/v1/tasks"
DEFAULT_TIMEOUT_SECONDS = 10.0

logger = get_logger(__name__)


def _json_value(value: object) -> object:
    if isinstance(value, date):
        return value.isoformat()
    return value


def _error_detail(response: httpx.Response) -> tuple[str, str | None]:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "Request failed.", None
    if not isinstance(body, dict):
        return "Request failed.", None
    detail = body.get("detail")
    field = body.get("field")
    message = detail if isinstance(detail, str) else "Request failed validation."
    return message, field if isinstance(field, str) else None


class HttpTaskStore:
    """Task store speaking to ``/api/v1/tasks`` through an httpx client."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_path: str = DEFAULT_BASE_PATH,
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._base_path = base_path.rstrip("/")
        self._owns_client = owns_client

    @classmethod
    def from_url(cls, base_url: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> Self:
        client = httpx.AsyncClient(base_url=base_url, timeout=timeout)
        return cls(client, owns_client=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str = "",
        *,
        task_id: UUID | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        url = f"{self._base_path}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "task.client.transport_error",
                extra={"method": method, "url": url, "error": type(exc).__name__},
            )
            raise StorageUnavailableError(str(exc)) from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise TaskNotFoundError(task_id)
        if response.status_code >= httpx.codes.INTERNAL_SERVER_ERROR:
            logger.warning(
                "task.client.server_error",
                extra={"method": method, "url": url, "status_code": response.status_code},
            )
            raise StorageUnavailableError(f"{method} {url} -> {response.status_code}")
        if response.is_client_error:
            message, field = _error_detail(response)
            raise TaskValidationError(message, field=field)
        return response

    async def create(self, draft: TaskDraft) -> TaskRead:
        payload = {name: _json_value(value) for name, value in draft.as_fields().items()}
        response = await self._request("POST", json=payload)
        return TaskRead.model_validate(response.json())

    async def get(self, task_id: UUID) -> TaskRead:
        response = await self._request("GET", f"/{task_id}", task_id=task_id)
        return TaskRead.model_validate(response.json())

    async def update(self, task_id: UUID, changes: Mapping[str, object]) -> TaskRead:
        payload = {name: _json_value(value) for name, value in changes.items()}
        response = await self._request("PUT", f"/{task_id}", task_id=task_id, json=payload)
        return TaskRead.model_validate(response.json())

    async def delete(self, task_id: UUID) -> None:
        await self._request("DELETE", f"/{task_id}", task_id=task_id)

    async def list_tasks(self, predicate: TaskPredicate) -> list[TaskRead]:
        response = await self._request("GET", params=predicate.filters.to_query_params())
        body = response.json()
        if not isinstance(body, list):
            raise StorageUnavailableError("Task list response was not a JSON array.")
        return [TaskRead.model_validate(item) for item in body]
