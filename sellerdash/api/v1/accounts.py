"""Seller account endpoints."""

from fastapi import APIRouter, Depends

from sellerdash.api.deps import get_current_user, get_owned_account, get_storage
from sellerdash.models.account import Account
from sellerdash.schemas.account import AccountSummary, MarketplaceConnectionResponse
from sellerdash.services.storage import Storage

router = APIRouter()


@router.get("", response_model=list[AccountSummary])
async def list_accounts(
    storage: Storage = Depends(get_storage),
    user_id: str = Depends(get_current_user),
) -> list[AccountSummary]:
    """List accounts owned by the current user, favorites first."""
    accounts = await storage.get_accounts_by_owner(user_id)
    return [AccountSummary.model_validate(a) for a in accounts]


@router.get("/{account_id}/marketplaces", response_model=list[MarketplaceConnectionResponse])
async def list_marketplaces(
    account: Account = Depends(get_owned_account),
    storage: Storage = Depends(get_storage),
) -> list[MarketplaceConnectionResponse]:
    connections = await storage.get_marketplace_connections(account.id)
    return [MarketplaceConnectionResponse.model_validate(c) for c in connections]
