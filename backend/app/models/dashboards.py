"""Persisted dashboard shapes."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class DashboardSummary(BaseModel):
    """Listing row, ordered by recency."""

    id: UUID
    created_at: datetime
    title: str
    description: str


class DashboardRecord(DashboardSummary):
    """Full saved dashboard, one row per save."""

    document_body: str
