"""Saved dashboard endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from backend.app.api.deps import get_gateway
from backend.app.db.repositories import DashboardNotFoundError, PersistenceGateway
from backend.app.models.dashboards import DashboardRecord, DashboardSummary

router = APIRouter(prefix="/dashboards", tags=["dashboards"])

Gateway = Annotated[PersistenceGateway, Depends(get_gateway)]


@router.get("", response_model=list[DashboardSummary])
async def list_dashboards(
    gateway: Gateway,
    limit: int = Query(50, ge=1, le=200),
) -> list[DashboardSummary]:
    """List saved dashboards, newest first."""
    return await gateway.list(limit)


@router.get("/{dashboard_id}", response_model=DashboardRecord)
async def get_dashboard(dashboard_id: UUID, gateway: Gateway) -> DashboardRecord:
    """Get a saved dashboard with its document."""
    return await gateway.load(dashboard_id)


@router.delete("/{dashboard_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_dashboard(dashboard_id: UUID, gateway: Gateway) -> Response:
    """Delete a saved dashboard."""
    if not await gateway.delete(dashboard_id):
        raise DashboardNotFoundError(dashboard_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
