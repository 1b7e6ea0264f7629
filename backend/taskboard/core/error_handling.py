"""Request-id middleware, request logging, and JSON error handlers."""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskboard.core.config import settings
from taskboard.core.errors import (
    StorageUnavailableError,
    TaskNotFoundError,
    TaskValidationError,
)
from taskboard.core.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.requests import Request
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "X-Request-Id"
HEALTH_PATHS = frozenset({"/health", "/healthz", "/readyz"})

logger = get_logger(__name__)


class RequestContextMiddleware:
    """Assign a request id, echo it in responses, and log request timing."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self._header_name = REQUEST_ID_HEADER.lower().encode("latin-1")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = self._incoming_request_id(scope) or uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id
        started = perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = int(message["status"])
                headers = [
                    (name, value)
                    for name, value in message.get("headers", [])
                    if name.lower() != self._header_name
                ]
                headers.append((self._header_name, request_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            self._log_request(scope, request_id, status_code, started)

    def _incoming_request_id(self, scope: Scope) -> str | None:
        for name, value in scope.get("headers", []):
            if name.lower() == self._header_name:
                candidate = value.decode("latin-1").strip()
                return candidate or None
        return None

    @staticmethod
    def _log_request(scope: Scope, request_id: str, status_code: int, started: float) -> None:
        path = str(scope.get("path", ""))
        if path in HEALTH_PATHS and not settings.request_log_include_health:
            return
        duration_ms = round((perf_counter() - started) * 1000, 2)
        extra = {
            "request_id": request_id,
            "method": scope.get("method"),
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
        }
        logger.info("http.request.complete", extra=extra)
        slow_threshold_ms = settings.request_log_slow_ms
        if slow_threshold_ms and duration_ms >= slow_threshold_ms:
            logger.warning(
                "http.request.slow",
                extra={**extra, "slow_threshold_ms": slow_threshold_ms},
            )


def _get_request_id(request: Request) -> str | None:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    return None


def _error_payload(*, detail: Any, request_id: str | None, **fields: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"detail": detail}
    payload.update({key: value for key, value in fields.items() if value is not None})
    if request_id is not None:
        payload["request_id"] = request_id
    return payload


def _json_safe(value: object) -> object:
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_json_safe(item) for item in value]
    if value is None or isinstance(value, str | int | float | bool):
        return value
    return str(value)


def _error_response(
    request: Request,
    *,
    status_code: int,
    detail: Any,
    headers: dict[str, str] | None = None,
    **fields: Any,
) -> JSONResponse:
    request_id = _get_request_id(request)
    response_headers = dict(headers or {})
    if request_id is not None:
        # Unhandled errors are rendered outside the request context middleware.
        response_headers[REQUEST_ID_HEADER] = request_id
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(detail=detail, request_id=request_id, **fields),
        headers=response_headers,
    )


async def _request_validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, RequestValidationError):
        msg = "Expected RequestValidationError"
        raise TypeError(msg)
    return _error_response(
        request,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=_json_safe(jsonable_encoder(exc.errors(), custom_encoder={bytes: _json_safe})),
    )


async def _response_validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, ResponseValidationError):
        msg = "Expected ResponseValidationError"
        raise TypeError(msg)
    logger.error(
        "http.response.invalid",
        extra={"request_id": _get_request_id(request), "errors": _json_safe(exc.errors())},
    )
    return _error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
    )


async def _http_exception_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, StarletteHTTPException):
        msg = "Expected StarletteHTTPException"
        raise TypeError(msg)
    return _error_response(
        request,
        status_code=exc.status_code,
        detail=exc.detail,
        headers=exc.headers,
    )


async def _task_validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, TaskValidationError):
        msg = "Expected TaskValidationError"
        raise TypeError(msg)
    return _error_response(
        request,
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=exc.message,
        code=exc.code,
        field=exc.field,
    )


async def _task_not_found_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, TaskNotFoundError):
        msg = "Expected TaskNotFoundError"
        raise TypeError(msg)
    return _error_response(
        request,
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Task not found",
        code=exc.code,
    )


async def _storage_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, StorageUnavailableError | SQLAlchemyError):
        msg = "Expected StorageUnavailableError or SQLAlchemyError"
        raise TypeError(msg)
    logger.error(
        "task.store.unavailable",
        exc_info=exc,
        extra={"request_id": _get_request_id(request), "path": request.url.path},
    )
    return _error_response(
        request,
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=StorageUnavailableError().message,
        code=StorageUnavailableError.code,
        retryable=True,
    )


async def _unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.error(
        "http.request.unhandled_error",
        exc_info=exc,
        extra={"request_id": _get_request_id(request), "path": request.url.path},
    )
    return _error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
    )


def install_error_handling(app: FastAPI) -> None:
    """Attach the request context middleware and JSON exception handlers."""
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(RequestValidationError, _request_validation_exception_handler)
    app.add_exception_handler(ResponseValidationError, _response_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_exception_handler)
    app.add_exception_handler(TaskValidationError, _task_validation_exception_handler)
    app.add_exception_handler(TaskNotFoundError, _task_not_found_exception_handler)
    app.add_exception_handler(StorageUnavailableError, _storage_exception_handler)
    app.add_exception_handler(SQLAlchemyError, _storage_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
