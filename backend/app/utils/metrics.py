"""Prometheus metrics for generation calls and conversation transitions."""

from prometheus_client import Counter, Histogram

generation_latency_ms = Histogram(
    "generation_latency_ms",
    "Generation call latency in milliseconds (including retries)",
    ["operation", "outcome"],
    buckets=[100, 500, 1000, 2000, 5000, 10000, 20000, 40000, 80000],
)

generation_retries_total = Counter(
    "generation_retries_total",
    "Total retries after transient backend overload",
    ["operation"],
)

generation_fallbacks_total = Counter(
    "generation_fallbacks_total",
    "Total deterministic fallbacks used instead of backend output",
    ["operation"],
)

conversation_transitions_total = Counter(
    "conversation_transitions_total",
    "Conversation step transitions",
    ["from_step", "to_step"],
)


class GenerationMetrics:
    """Interface for generation metrics (no-op)."""

    def record_latency(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record generation latency."""
        pass

    def inc_retry(self, operation: str) -> None:
        """Increment retry counter."""
        pass

    def inc_fallback(self, operation: str) -> None:
        """Increment fallback counter."""
        pass


class PrometheusGenerationMetrics(GenerationMetrics):
    """Prometheus-based generation metrics implementation."""

    def record_latency(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record generation latency."""
        generation_latency_ms.labels(operation=operation, outcome=outcome).observe(latency_ms)

    def inc_retry(self, operation: str) -> None:
        """Increment retry counter."""
        generation_retries_total.labels(operation=operation).inc()

    def inc_fallback(self, operation: str) -> None:
        """Increment fallback counter."""
        generation_fallbacks_total.labels(operation=operation).inc()


def record_transition(from_step: str, to_step: str) -> None:
    """Count a conversation step transition."""
    conversation_transitions_total.labels(from_step=from_step, to_step=to_step).inc()
