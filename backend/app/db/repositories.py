"""Repository protocol and persistence gateway for saved dashboards."""

import logging
from typing import Literal, Protocol
from uuid import UUID

from backend.app.models.dashboards import DashboardRecord, DashboardSummary

logger = logging.getLogger(__name__)

SavePolicy = Literal["insert", "overwrite"]


class DashboardNotFoundError(Exception):
    """No saved dashboard has the requested id."""

    def __init__(self, dashboard_id: UUID) -> None:
        super().__init__(f"Dashboard {dashboard_id} not found")
        self.dashboard_id = dashboard_id


class PersistenceError(Exception):
    """The durable store failed; surfaced once, never retried."""

    pass


class DashboardRepository(Protocol):
    """Repository for saved dashboard operations."""

    async def insert(self, title: str, description: str, document_body: str) -> DashboardRecord:
        """Create a new dashboard record.

        Returns:
            The stored record (fresh id and createdAt)
        """
        ...

    async def replace(
        self, dashboard_id: UUID, title: str, description: str, document_body: str
    ) -> DashboardRecord:
        """Replace a record's content in place, keeping id and createdAt.

        Raises:
            DashboardNotFoundError: If no record has this id
        """
        ...

    async def get(self, dashboard_id: UUID) -> DashboardRecord | None:
        """Get a dashboard by id, or None if not found."""
        ...

    async def list_recent(self, limit: int = 50) -> list[DashboardSummary]:
        """List dashboards ordered by createdAt descending."""
        ...

    async def delete(self, dashboard_id: UUID) -> bool:
        """Delete a dashboard.

        Returns:
            True if a record was deleted, False if it did not exist
        """
        ...


class PersistenceGateway:
    """Save/load boundary used by conversations.

    Operations are fail-fast: repository failures propagate as
    PersistenceError with no retry or queuing.

    The save policy decides what a save does for a session whose document is
    already backed by a record (loaded or previously saved): ``insert`` always
    creates a new record, ``overwrite`` replaces that record in place.
    """

    def __init__(self, repository: DashboardRepository, policy: SavePolicy = "insert") -> None:
        self._repository = repository
        self.policy = policy

    async def save(
        self,
        title: str,
        description: str,
        document: str,
        *,
        existing_id: UUID | None = None,
    ) -> UUID:
        """Persist a document and return the id of the record holding it."""
        if self.policy == "overwrite" and existing_id is not None:
            try:
                record = await self._repository.replace(existing_id, title, description, document)
            except DashboardNotFoundError:
                logger.warning(f"Dashboard {existing_id} vanished before overwrite, inserting instead")
            else:
                logger.info(f"Overwrote dashboard {record.id}")
                return record.id

        record = await self._repository.insert(title, description, document)
        logger.info(f"Saved dashboard {record.id} ({title!r})")
        return record.id

    async def load(self, dashboard_id: UUID) -> DashboardRecord:
        """Load a saved dashboard.

        Raises:
            DashboardNotFoundError: If no record has this id
        """
        record = await self._repository.get(dashboard_id)
        if record is None:
            raise DashboardNotFoundError(dashboard_id)
        return record

    async def list(self, limit: int = 50) -> list[DashboardSummary]:
        """List saved dashboards, newest first."""
        return await self._repository.list_recent(limit)

    async def delete(self, dashboard_id: UUID) -> bool:
        """Delete a dashboard; False means notFound."""
        deleted = await self._repository.delete(dashboard_id)
        if deleted:
            logger.info(f"Deleted dashboard {dashboard_id}")
        return deleted
