"""Amazon SP-API integration endpoints."""

from pathlib import Path
from typing import Optional
import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from sellerdash.api.deps import (
    get_current_user,
    get_http_transport,
    get_oauth_service,
    get_owned_account,
    get_storage,
)
from sellerdash.config import get_settings
from sellerdash.models.account import Account
from sellerdash.schemas.amazon import (
    ConnectionStatus,
    ConnectionSummary,
    ConnectRequest,
    ConnectResponse,
    DiagnosticsResponse,
    MessageResponse,
    SyncRequest,
    SyncResponse,
    SyncStatsResponse,
)
from sellerdash.services.amazon import regions
from sellerdash.services.amazon.client import AmazonSPAPIClient
from sellerdash.services.amazon.diagnostics import run_diagnostics
from sellerdash.services.amazon.oauth import (
    AmazonOAuthError,
    AmazonOAuthService,
    CallbackResult,
    HandshakeState,
)
from sellerdash.services.amazon.sync import AccountSyncService
from sellerdash.services.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter()

templates = Jinja2Templates(directory=str(Path(__file__).parent.parent.parent / "templates"))


def _render_callback(request: Request, result: CallbackResult) -> HTMLResponse:
    """Render the popup page that reports the outcome to the opener window."""
    settings = get_settings()
    if result.success:
        payload = {"source": "amazon-oauth", "status": "success", "accountId": result.account_id}
    else:
        payload = {"source": "amazon-oauth", "status": "error", "message": result.message}

    redirect_url = None
    if result.success and settings.FRONTEND_URL:
        redirect_url = f"{settings.FRONTEND_URL.rstrip('/')}/settings?tab=amazon"

    return templates.TemplateResponse(
        request,
        "oauth_result.html",
        {
            "success": result.success,
            "message": result.message,
            "error_code": result.error_code,
            "payload": payload,
            "redirect_url": redirect_url,
            "close_delay_ms": 500 if result.success else 1500,
        },
        status_code=result.status_code,
    )


@router.post("/connect", response_model=ConnectResponse)
async def connect_amazon(
    body: ConnectRequest,
    request: Request,
    storage: Storage = Depends(get_storage),
    user_id: str = Depends(get_current_user),
    oauth: AmazonOAuthService = Depends(get_oauth_service),
) -> ConnectResponse:
    """Start connecting a Seller Central account.

    Creates the account and returns the consent URL to open in a popup.
    The callback URL is derived from this request's own origin.
    """
    redirect_uri = str(request.url_for("amazon_oauth_callback"))
    try:
        auth = await oauth.initiate(
            storage,
            owner_id=user_id,
            account_name=body.account_name,
            marketplace=body.marketplace,
            redirect_uri=redirect_uri,
        )
    except AmazonOAuthError as e:
        raise HTTPException(
            status_code=e.status_code or status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )

    return ConnectResponse(
        authorization_url=auth.authorization_url,
        account_id=auth.account_id,
    )


@router.get("/auth/callback", name="amazon_oauth_callback", response_class=HTMLResponse)
async def amazon_oauth_callback(
    request: Request,
    spapi_oauth_code: Optional[str] = Query(None, description="Authorization code from Amazon"),
    state: Optional[str] = Query(None, description="Account id issued when the flow started"),
    selling_partner_id: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
    oauth: AmazonOAuthService = Depends(get_oauth_service),
) -> HTMLResponse:
    """Handle the redirect back from Seller Central.

    No dashboard session is required here. Every outcome renders the popup
    page, never a raw error.
    """
    try:
        result = await oauth.handle_callback(
            storage, spapi_oauth_code, state, selling_partner_id
        )
    except Exception as e:
        logger.exception("Unexpected error in Amazon OAuth callback")
        result = CallbackResult(
            state=HandshakeState.ERROR,
            error_code="unexpected",
            message=f"Authorization failed: {type(e).__name__}",
            status_code=500,
        )

    logger.info(f"Amazon OAuth callback finished in state {result.state.value}")
    return _render_callback(request, result)


@router.get("/status/{account_id}", response_model=ConnectionStatus)
async def get_connection_status(
    account: Account = Depends(get_owned_account),
    storage: Storage = Depends(get_storage),
) -> ConnectionStatus:
    """Check whether an account has Amazon credentials."""
    credential = await storage.get_credentials_by_account(account.id)
    if credential is None:
        return ConnectionStatus(connected=False)

    return ConnectionStatus(
        connected=True,
        is_active=credential.is_active,
        last_synced_at=credential.last_synced_at,
        region=credential.region,
        marketplace_ids=credential.marketplace_id_list,
    )


@router.get("/connections", response_model=list[ConnectionSummary])
async def list_connections(
    storage: Storage = Depends(get_storage),
    user_id: str = Depends(get_current_user),
) -> list[ConnectionSummary]:
    """List connected Amazon accounts for the current user."""
    connections = []
    for account in await storage.get_accounts_by_owner(user_id):
        credential = await storage.get_credentials_by_account(account.id)
        if credential is None:
            continue
        marketplaces = await storage.get_marketplace_connections(account.id)
        connections.append(
            ConnectionSummary(
                id=credential.id,
                account_id=account.id,
                account_name=account.brand_name,
                seller_id=credential.seller_id,
                region=credential.region,
                marketplaces=[m.marketplace for m in marketplaces if m.is_active],
                is_active=credential.is_active,
                last_synced_at=credential.last_synced_at,
            )
        )
    return connections


@router.delete("/connections/{credential_id}", response_model=MessageResponse)
async def delete_connection(
    credential_id: str,
    storage: Storage = Depends(get_storage),
    user_id: str = Depends(get_current_user),
) -> MessageResponse:
    """Disconnect an Amazon account by deleting its stored credential."""
    credential = await storage.get_credential(credential_id)
    if credential is None or await storage.get_owned_account(credential.account_id, user_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Connection not found",
        )

    await storage.delete_credential(credential)
    logger.info(f"Deleted Amazon credential {credential_id}")
    return MessageResponse(message="Amazon connection removed successfully")


@router.post("/sync", response_model=SyncResponse)
async def sync_amazon(
    body: SyncRequest,
    storage: Storage = Depends(get_storage),
    user_id: str = Depends(get_current_user),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> SyncResponse:
    """Sync catalog, inventory and orders for one account marketplace.

    Partial failures are reported per resource; data saved by earlier
    steps is kept.
    """
    account = await storage.get_owned_account(body.account_id, user_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found",
        )

    credential = await storage.get_credentials_by_account(account.id)
    if credential is None or not credential.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Amazon account not connected or inactive",
        )

    service = AccountSyncService(storage, AmazonSPAPIClient(credential, transport=transport))
    result = await service.sync(account.id, body.marketplace)

    return SyncResponse(
        success=result.success,
        message=result.message,
        stats=SyncStatsResponse(**result.stats.to_dict()),
        errors=result.errors,
        hint=result.hint,
    )


@router.get("/diagnostics", response_model=DiagnosticsResponse)
async def diagnostics(
    account_id: str = Query(..., description="Account whose credential to check"),
    marketplace: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
    user_id: str = Depends(get_current_user),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> DiagnosticsResponse:
    """Check SP-API access with an account's stored credential."""
    account = await storage.get_owned_account(account_id, user_id)
    credential = await storage.get_credentials_by_account(account.id) if account else None
    if credential is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No Amazon credentials found for this account",
        )

    if marketplace:
        marketplace_id = regions.marketplace_id_for(marketplace)
    else:
        marketplace_id = (credential.marketplace_id_list or [regions.marketplace_id_for("US")])[0]

    return await run_diagnostics(
        AmazonSPAPIClient(credential, transport=transport), marketplace_id
    )
