"""In-memory implementations of repository interfaces."""

import uuid
from datetime import datetime, timedelta, timezone

from backend.app.db.repositories import DashboardNotFoundError
from backend.app.models.dashboards import DashboardRecord, DashboardSummary
from backend.app.ratelimit import RetryAfter


class InMemoryDashboardRepository:
    """In-memory implementation of DashboardRepository."""

    def __init__(self) -> None:
        self._records: dict[uuid.UUID, DashboardRecord] = {}

    async def insert(self, title: str, description: str, document_body: str) -> DashboardRecord:
        """Create a new dashboard record."""
        record = DashboardRecord(
            id=uuid.uuid4(),
            created_at=datetime.now(timezone.utc),
            title=title,
            description=description,
            document_body=document_body,
        )
        self._records[record.id] = record
        return record

    async def replace(
        self, dashboard_id: uuid.UUID, title: str, description: str, document_body: str
    ) -> DashboardRecord:
        """Replace a record's content in place."""
        existing = self._records.get(dashboard_id)
        if existing is None:
            raise DashboardNotFoundError(dashboard_id)

        record = existing.model_copy(
            update={"title": title, "description": description, "document_body": document_body}
        )
        self._records[dashboard_id] = record
        return record

    async def get(self, dashboard_id: uuid.UUID) -> DashboardRecord | None:
        """Get a dashboard by id."""
        return self._records.get(dashboard_id)

    async def list_recent(self, limit: int = 50) -> list[DashboardSummary]:
        """List dashboards, newest first (later inserts win ties)."""
        newest_first = sorted(
            reversed(list(self._records.values())),
            key=lambda record: record.created_at,
            reverse=True,
        )
        return [
            DashboardSummary(
                id=record.id,
                created_at=record.created_at,
                title=record.title,
                description=record.description,
            )
            for record in newest_first[:limit]
        ]

    async def delete(self, dashboard_id: uuid.UUID) -> bool:
        """Delete a dashboard."""
        return self._records.pop(dashboard_id, None) is not None


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._windows: dict[str, tuple[datetime, int]] = {}

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available."""
        window = self._windows.get(key)
        window_length = timedelta(seconds=self._window_seconds)

        if window is None or now >= window[0] + window_length:
            self._windows[key] = (now, 1)
            return None

        window_start, count = window
        if count >= self._max_requests:
            seconds_remaining = int((window_start + window_length - now).total_seconds())
            return RetryAfter(seconds=max(1, seconds_remaining))

        self._windows[key] = (window_start, count + 1)
        return None
