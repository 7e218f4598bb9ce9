"""Dashboard, listing and inventory endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from sellerdash.api.deps import get_dashboard_service, get_owned_account
from sellerdash.models.account import Account
from sellerdash.schemas.dashboard import (
    DashboardResponse,
    InventoryResponse,
    InventorySummary,
    ListingResponse,
)
from sellerdash.services.dashboard import AmazonNotConnectedError, DashboardService

router = APIRouter()


def _not_connected(e: AmazonNotConnectedError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


@router.get("/dashboard/{account_id}/{marketplace}", response_model=DashboardResponse)
async def get_dashboard(
    marketplace: str,
    account: Account = Depends(get_owned_account),
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardResponse:
    """KPIs and charts for one account marketplace.

    Computed from live orders when possible, otherwise from stored daily
    metrics.
    """
    try:
        return await service.get_dashboard(account.id, marketplace)
    except AmazonNotConnectedError as e:
        raise _not_connected(e)


@router.get("/listings/{account_id}/{marketplace}", response_model=list[ListingResponse])
async def get_listings(
    marketplace: str,
    account: Account = Depends(get_owned_account),
    service: DashboardService = Depends(get_dashboard_service),
) -> list[ListingResponse]:
    """Catalog listings fetched live from SP-API."""
    try:
        return await service.get_live_listings(account.id, marketplace)
    except AmazonNotConnectedError as e:
        raise _not_connected(e)


@router.get("/inventory/{account_id}/{marketplace}", response_model=list[InventoryResponse])
async def get_inventory(
    marketplace: str,
    account: Account = Depends(get_owned_account),
    service: DashboardService = Depends(get_dashboard_service),
) -> list[InventoryResponse]:
    """FBA inventory fetched live from SP-API."""
    try:
        return await service.get_live_inventory(account.id, marketplace)
    except AmazonNotConnectedError as e:
        raise _not_connected(e)


@router.get("/inventory-summary/{account_id}/{marketplace}", response_model=InventorySummary)
async def get_inventory_summary(
    marketplace: str,
    account: Account = Depends(get_owned_account),
    service: DashboardService = Depends(get_dashboard_service),
) -> InventorySummary:
    """Totals over the inventory saved by the last sync."""
    return await service.get_inventory_summary(account.id, marketplace)
