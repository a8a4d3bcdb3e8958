"""Structured logging for generation calls."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredGenerationLogger:
    """Structured logger for generation attempts."""

    def log_call(
        self,
        operation: str,
        model: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a generation call with structured data."""
        log_data: dict[str, Any] = {
            "operation": operation,
            "model": model,
            "attempt": attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Generation call: {operation} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
