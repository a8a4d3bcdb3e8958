"""Shared FastAPI dependencies."""

from collections.abc import Callable
from datetime import datetime
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from backend.app.db.repositories import PersistenceGateway
from backend.app.orchestration.machine import ConversationMachine
from backend.app.orchestration.registry import ConversationRegistry
from backend.app.ratelimit import RateLimiter, make_rate_limit_key


def get_registry(request: Request) -> ConversationRegistry:
    """Conversation registry of this application instance."""
    registry: ConversationRegistry = request.app.state.registry
    return registry


def get_gateway(request: Request) -> PersistenceGateway:
    """Persistence gateway of this application instance."""
    gateway: PersistenceGateway = request.app.state.gateway
    return gateway


def get_rate_limiter(request: Request) -> RateLimiter:
    """Rate limiter for AI-triggering routes."""
    limiter: RateLimiter = request.app.state.rate_limiter
    return limiter


def get_conversation(
    conversation_id: str,
    registry: Annotated[ConversationRegistry, Depends(get_registry)],
) -> ConversationMachine:
    """Resolve the path's conversation (404 via ConversationNotFoundError)."""
    return registry.get(conversation_id)


def rate_limited(bucket: str) -> Callable[..., None]:
    """Build a dependency enforcing the per-conversation quota of a bucket."""

    def check(
        conversation_id: str,
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    ) -> None:
        retry_after = limiter.check_quota(
            make_rate_limit_key(conversation_id, bucket), datetime.now()
        )
        if retry_after is not None:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers={"Retry-After": str(retry_after.seconds)},
            )

    return check
