"""FastAPI application factory.

Creates the app with logging and metrics middleware, CORS, Sentry, domain
error handlers, lifespan wiring for the database, unit of work, meeting
scheduler and services, and the v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.timeet.agendas.service import AgendaService
from src.timeet.api.errors import register_exception_handlers
from src.timeet.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.timeet.api.v1.router import router as v1_router
from src.timeet.config import get_settings
from src.timeet.core.database import close_db, init_db
from src.timeet.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.timeet.core.unit_of_work import unit_of_work_factory
from src.timeet.meetings.scheduler import MeetingScheduler
from src.timeet.meetings.service import MeetingService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: wire services on startup, release them on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()
    await init_db()

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    uow_factory = unit_of_work_factory()
    scheduler = MeetingScheduler(
        misfire_grace_seconds=settings.MEETING_START_MISFIRE_GRACE_SECONDS,
    )
    meeting_service = MeetingService(uow_factory, scheduler)
    scheduler.bind_start_handler(meeting_service.start_meeting)

    app.state.uow_factory = uow_factory
    app.state.meeting_scheduler = scheduler
    app.state.meeting_service = meeting_service
    app.state.agenda_service = AgendaService(uow_factory)

    if settings.MEETING_SCHEDULER_ENABLED:
        scheduler.start()
        restored = await meeting_service.restore_schedules()
        log.info("startup.meeting_scheduler_ready", restored=restored)
    else:
        log.info("startup.meeting_scheduler_disabled")

    yield

    scheduler.shutdown()
    await close_db()
    log.info("shutdown.complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Timeet API",
        version="0.1.0",
        description="Meeting, participant, and agenda management with timed agendas",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    # Middleware is added in reverse order (last added = outermost)

    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router, prefix="/api/v1")

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
