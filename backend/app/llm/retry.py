"""Retrying call combinator for transiently overloaded backends.

Only one failure class is retried: the backend reporting it is overloaded.
Everything else (auth errors, malformed responses, bugs) propagates on the
first attempt; malformed output is recovered by the callers' fallback paths.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from openai import APIStatusError

logger = logging.getLogger(__name__)

T = TypeVar("T")

OVERLOAD_STATUS_CODES = frozenset({429, 503, 529})


def is_backend_overloaded(error: BaseException) -> bool:
    """Classify an error as transient backend overload."""
    if isinstance(error, APIStatusError):
        return error.status_code in OVERLOAD_STATUS_CODES

    message = str(error)
    return "[503]" in message or "overloaded" in message.lower()


@dataclass(frozen=True)
class RetryPolicy:
    """Retry policy for a single logical call.

    Attempts are counted from zero; after a retryable failure on attempt
    ``n`` the call is retried if ``n < max_retries``, after waiting
    ``initial_delay_ms * 2**n``. With the defaults a call is made at most
    four times, with waits of 1s, 2s and 4s.
    """

    max_retries: int = 3
    initial_delay_ms: int = 1000
    is_retryable: Callable[[BaseException], bool] = field(default=is_backend_overloaded)

    def delay_ms(self, attempt: int) -> int:
        """Backoff before retrying after a failure on ``attempt``."""
        return self.initial_delay_ms * (2**attempt)


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Callable[[int, int, BaseException], None] | None = None,
) -> T:
    """Invoke ``fn`` under ``policy``.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt
        policy: Retry policy
        sleep: Awaitable sleep taking seconds (injectable for tests)
        on_retry: Optional hook called with (attempt, delay_ms, error) before waiting

    Returns:
        The first successful result

    Raises:
        The last error, unchanged, when it is not retryable or the budget is spent
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as e:
            if not policy.is_retryable(e) or attempt >= policy.max_retries:
                raise

            delay_ms = policy.delay_ms(attempt)
            logger.warning(
                f"Backend overloaded, retrying in {delay_ms}ms "
                f"(attempt {attempt + 1}/{policy.max_retries})"
            )
            if on_retry is not None:
                on_retry(attempt, delay_ms, e)

            await sleep(delay_ms / 1000)
            attempt += 1
