"""FastAPI application - conversational dashboard generator."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from backend.app.api.routes.conversations import router as conversations_router
from backend.app.api.routes.dashboards import router as dashboards_router
from backend.app.api.routes.health import router as health_router
from backend.app.config import Settings, get_settings
from backend.app.db.engine import (
    create_async_engine_from_settings,
    create_schema,
    create_session_factory,
)
from backend.app.db.inmemory import InMemoryDashboardRepository, InMemoryRateLimiter
from backend.app.db.repositories import (
    DashboardNotFoundError,
    DashboardRepository,
    PersistenceError,
    PersistenceGateway,
)
from backend.app.db.sql_repositories import SqlDashboardRepository
from backend.app.llm.client import GenerationClient, build_generation_client
from backend.app.llm.errors import BackendConfigurationError
from backend.app.orchestration.errors import (
    ConversationBusyError,
    ConversationNotFoundError,
    InvalidTransitionError,
)
from backend.app.orchestration.registry import ConversationRegistry
from backend.app.ratelimit import RateLimiter, RedisRateLimiter
from backend.app.utils.metrics import PrometheusGenerationMetrics

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ConversationNotFoundError)
    async def conversation_not_found(request: Request, exc: ConversationNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(DashboardNotFoundError)
    async def dashboard_not_found(request: Request, exc: DashboardNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(ConversationBusyError)
    async def conversation_busy(request: Request, exc: ConversationBusyError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition(request: Request, exc: InvalidTransitionError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(PersistenceError)
    async def persistence_failed(request: Request, exc: PersistenceError) -> JSONResponse:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))


def create_app(
    settings: Settings | None = None,
    *,
    client: GenerationClient | None = None,
    repository: DashboardRepository | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """Build the application.

    Collaborators default from settings: the OpenAI (or offline) generation
    client, SQL persistence when DATABASE_URL is set (in-memory otherwise),
    and a Redis (or in-memory) rate limiter.
    """
    settings = settings or get_settings()

    unavailable_reason: str | None = None
    if client is None:
        try:
            client = build_generation_client(settings, PrometheusGenerationMetrics())
        except BackendConfigurationError as e:
            unavailable_reason = str(e)

    engine = None
    if repository is None:
        if settings.database_url:
            engine = create_async_engine_from_settings(settings)
            repository = SqlDashboardRepository(create_session_factory(engine))
        else:
            logger.warning("DATABASE_URL not set, saved dashboards are kept in memory")
            repository = InMemoryDashboardRepository()

    if rate_limiter is None:
        if settings.redis_url:
            rate_limiter = RedisRateLimiter(
                redis.from_url(settings.redis_url),  # type: ignore[no-untyped-call]
                max_requests=settings.generation_requests_per_min,
            )
        else:
            rate_limiter = InMemoryRateLimiter(max_requests=settings.generation_requests_per_min)

    gateway = PersistenceGateway(repository, settings.save_policy)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if engine is not None:
            await create_schema(engine)
        yield
        if engine is not None:
            await engine.dispose()

    app = FastAPI(title="Agent Dash API", version=VERSION, lifespan=lifespan)

    app.state.settings = settings
    app.state.engine = engine
    app.state.gateway = gateway
    app.state.rate_limiter = rate_limiter
    app.state.generation_status = "ok" if client is not None else "not_configured"
    app.state.registry = ConversationRegistry(
        settings, client, gateway, unavailable_reason=unavailable_reason
    )

    app.include_router(health_router, tags=["health"])
    app.include_router(conversations_router)
    app.include_router(dashboards_router)
    _register_error_handlers(app)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "Agent Dash API", "version": VERSION}

    return app


app = create_app()
