"""FastAPI application entrypoint and router wiring for the task board."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import APIRouter, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskboard.api.tasks import router as tasks_router
from taskboard.core.config import settings
from taskboard.core.error_handling import install_error_handling
from taskboard.core.logging import configure_logging, get_logger
from taskboard.db.session import check_db, init_db
from taskboard.schemas.health import HealthStatusResponse, ReadinessStatusResponse

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

configure_logging()
logger = get_logger(__name__)
OPENAPI_TAGS = [
    {
        "name": "health",
        "description": (
            "Service liveness/readiness probes used by infrastructure and runtime checks."
        ),
    },
    {
        "name": "tasks",
        "description": "Task CRUD, filtered listing, and status workflow operations.",
    },
]


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Initialize application resources before serving requests."""
    logger.info(
        "app.lifecycle.starting environment=%s db_auto_migrate=%s",
        settings.environment,
        settings.db_auto_migrate,
    )
    await init_db()
    logger.info("app.lifecycle.started")
    try:
        yield
    finally:
        logger.info("app.lifecycle.stopped")


def create_app() -> FastAPI:
    """Build the application with middleware, probes, and the versioned API."""
    fastapi_app = FastAPI(
        title="Task Board API",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=OPENAPI_TAGS,
    )

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    if origins:
        fastapi_app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.info("app.cors.enabled origins_count=%s", len(origins))
    else:
        logger.info("app.cors.disabled")

    install_error_handling(fastapi_app)

    @fastapi_app.get(
        "/health",
        tags=["health"],
        response_model=HealthStatusResponse,
        summary="Health Check",
        description="Lightweight liveness probe endpoint.",
    )
    def health() -> HealthStatusResponse:
        """Lightweight liveness probe endpoint."""
        return HealthStatusResponse(ok=True)

    @fastapi_app.get(
        "/healthz",
        tags=["health"],
        response_model=HealthStatusResponse,
        summary="Health Alias Check",
        description="Alias liveness probe endpoint for platform compatibility.",
    )
    def healthz() -> HealthStatusResponse:
        """Alias liveness probe endpoint for platform compatibility."""
        return HealthStatusResponse(ok=True)

    @fastapi_app.get(
        "/readyz",
        tags=["health"],
        response_model=ReadinessStatusResponse,
        summary="Readiness Check",
        description="Readiness probe that also verifies the task database answers.",
        responses={
            status.HTTP_503_SERVICE_UNAVAILABLE: {
                "model": ReadinessStatusResponse,
                "description": "Task database is unreachable.",
            },
        },
    )
    async def readyz() -> ReadinessStatusResponse | JSONResponse:
        """Readiness probe that also verifies the task database answers."""
        if await check_db():
            return ReadinessStatusResponse(ok=True, database="connected")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=ReadinessStatusResponse(ok=False, database="disconnected").model_dump(),
        )

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(tasks_router)
    fastapi_app.include_router(api_v1)

    logger.debug("app.routes.registered count=%s", len(fastapi_app.routes))
    return fastapi_app


app = create_app()
