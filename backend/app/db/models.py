"""SQLAlchemy ORM models for saved dashboards."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Dashboard(Base):
    """Dashboard table - one row per explicit save, listed newest first."""

    __tablename__ = "dashboard"
    __table_args__ = (Index("idx_dashboard_created", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    document_body: Mapped[str] = mapped_column(Text, nullable=False)
