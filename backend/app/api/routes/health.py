"""Operational endpoints.

- /health: liveness, always 200 while the process runs
- /healthz: component status (database, Redis, generation backend)
- /metrics: Prometheus exposition
"""

import json
from typing import Any

import redis
from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from backend.app.config import Settings

router = APIRouter()


async def check_db(engine: AsyncEngine | None) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    if engine is None:
        return (True, "in_memory")

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


async def check_redis(settings: Settings) -> tuple[bool, str]:
    """Check Redis connectivity.

    Returns:
        (is_ok, status_message)
    """
    if not settings.redis_url:
        return (True, "not_configured")

    try:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        client.ping()
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(request: Request) -> dict[str, Any] | Response:
    """Component health.

    The generation backend being unconfigured is reported but does not make
    the service unhealthy; conversations still start and explain the setup.

    Returns:
        200 with component status if core systems ok
        503 if the database or Redis fail
    """
    settings: Settings = request.app.state.settings

    db_ok, db_status = await check_db(request.app.state.engine)
    redis_ok, redis_status = await check_redis(settings)
    generation_status = request.app.state.generation_status

    core_ok = db_ok and redis_ok

    response_body = {
        "status": "ok" if core_ok else "degraded",
        "components": {
            "db": db_status,
            "redis": redis_status,
            "generation": generation_status,
        },
    }

    if not core_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics: generation latency, retries, fallbacks and step transitions."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
