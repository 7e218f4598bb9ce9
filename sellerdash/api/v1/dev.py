"""Development-only endpoints for checking Amazon access.

Both endpoints work with the LWA identity and refresh token configured in
the environment, bypassing the Seller Central handshake.
"""

from typing import Optional
import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status

from sellerdash.api.deps import (
    get_current_user,
    get_http_transport,
    get_oauth_service,
    get_storage,
    require_development,
)
from sellerdash.config import Settings
from sellerdash.models.amazon_credential import AmazonCredential
from sellerdash.schemas.amazon import DiagnosticsResponse, EnvCredentialsResponse
from sellerdash.services.amazon import regions
from sellerdash.services.amazon.client import AmazonSPAPIClient
from sellerdash.services.amazon.diagnostics import run_diagnostics
from sellerdash.services.amazon.oauth import AmazonOAuthService
from sellerdash.services.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_env_credentials(settings: Settings) -> None:
    if not (
        settings.AMAZON_REFRESH_TOKEN
        and settings.AMAZON_LWA_CLIENT_ID
        and settings.AMAZON_LWA_CLIENT_SECRET
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing environment credentials",
        )


@router.get("/amazon/env-check", response_model=DiagnosticsResponse)
async def env_check(
    marketplace: str = Query("US"),
    settings: Settings = Depends(require_development),
    _: str = Depends(get_current_user),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> DiagnosticsResponse:
    """Run the access diagnostics with the environment credentials."""
    _require_env_credentials(settings)

    # Transient credential, never added to the session
    credential = AmazonCredential(
        account_id="environment",
        lwa_client_id=settings.AMAZON_LWA_CLIENT_ID,
        lwa_client_secret=settings.AMAZON_LWA_CLIENT_SECRET,
        refresh_token=settings.AMAZON_REFRESH_TOKEN,
        region=regions.region_for_marketplace(marketplace),
        is_active=True,
    )
    client = AmazonSPAPIClient(credential, settings=settings, transport=transport)
    return await run_diagnostics(client, regions.marketplace_id_for(marketplace))


@router.post("/amazon/env-credentials", response_model=EnvCredentialsResponse)
async def save_env_credentials(
    settings: Settings = Depends(require_development),
    storage: Storage = Depends(get_storage),
    user_id: str = Depends(get_current_user),
    oauth: AmazonOAuthService = Depends(get_oauth_service),
) -> EnvCredentialsResponse:
    """Store the environment credentials on the user's first account."""
    _require_env_credentials(settings)

    accounts = await storage.get_accounts_by_owner(user_id)
    if not accounts:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No accounts found",
        )

    account = accounts[0]
    account_id, account_name = account.id, account.brand_name
    logger.info(f"Saving environment credentials to account {account_id}")
    credential, created = await oauth.upsert_credential(
        storage, account, settings.AMAZON_REFRESH_TOKEN, None
    )

    return EnvCredentialsResponse(
        success=True,
        message="Credentials saved to database" if created else "Updated existing credentials",
        credential_id=credential.id,
        account_id=account_id,
        account_name=account_name,
    )
