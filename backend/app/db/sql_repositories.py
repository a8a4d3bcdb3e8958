"""SQL implementations of repository interfaces."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.db.models import Dashboard
from backend.app.db.repositories import DashboardNotFoundError, PersistenceError
from backend.app.models.dashboards import DashboardRecord, DashboardSummary


def _to_record(row: Dashboard) -> DashboardRecord:
    return DashboardRecord(
        id=row.id,
        created_at=row.created_at,
        title=row.title,
        description=row.description,
        document_body=row.document_body,
    )


class SqlDashboardRepository:
    """SQL implementation of DashboardRepository.

    Each operation runs in its own session from the factory.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, title: str, description: str, document_body: str) -> DashboardRecord:
        """Create a new dashboard record."""
        row = Dashboard(
            id=uuid.uuid4(),
            created_at=datetime.now(timezone.utc),
            title=title,
            description=description,
            document_body=document_body,
        )
        record = _to_record(row)

        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not save dashboard: {type(e).__name__}") from e

        return record

    async def replace(
        self, dashboard_id: uuid.UUID, title: str, description: str, document_body: str
    ) -> DashboardRecord:
        """Replace a record's content in place."""
        try:
            async with self._session_factory() as session:
                row = await session.get(Dashboard, dashboard_id)
                if row is None:
                    raise DashboardNotFoundError(dashboard_id)

                row.title = title
                row.description = description
                row.document_body = document_body
                record = _to_record(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not overwrite dashboard: {type(e).__name__}") from e

        return record

    async def get(self, dashboard_id: uuid.UUID) -> DashboardRecord | None:
        """Get a dashboard by id."""
        try:
            async with self._session_factory() as session:
                row = await session.get(Dashboard, dashboard_id)
                return _to_record(row) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load dashboard: {type(e).__name__}") from e

    async def list_recent(self, limit: int = 50) -> list[DashboardSummary]:
        """List dashboards ordered by created_at descending."""
        stmt = (
            select(Dashboard.id, Dashboard.created_at, Dashboard.title, Dashboard.description)
            .order_by(Dashboard.created_at.desc())
            .limit(limit)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not list dashboards: {type(e).__name__}") from e

        return [
            DashboardSummary(
                id=row.id,
                created_at=row.created_at,
                title=row.title,
                description=row.description,
            )
            for row in rows
        ]

    async def delete(self, dashboard_id: uuid.UUID) -> bool:
        """Delete a dashboard."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(delete(Dashboard).where(Dashboard.id == dashboard_id))
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not delete dashboard: {type(e).__name__}") from e

        return result.rowcount > 0
