"""Amazon integration schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ConnectRequest(BaseModel):
    """Start connecting a Seller Central account."""

    account_name: str = Field(..., min_length=1, max_length=255)
    marketplace: str = Field(..., min_length=2, max_length=10)


class ConnectResponse(BaseModel):
    """Consent URL for the connection popup."""

    success: bool = True
    authorization_url: str
    account_id: str


class ConnectionStatus(BaseModel):
    """Credential status for one account."""

    connected: bool
    is_active: bool = False
    last_synced_at: Optional[datetime] = None
    region: Optional[str] = None
    marketplace_ids: list[str] = []


class ConnectionSummary(BaseModel):
    """Connected account as shown in settings. Never includes secrets."""

    id: str
    account_id: str
    account_name: str
    seller_id: Optional[str]
    region: str
    marketplaces: list[str]
    is_active: bool
    last_synced_at: Optional[datetime]


class SyncRequest(BaseModel):
    """Sync one account marketplace."""

    account_id: str
    marketplace: str = Field(..., min_length=2, max_length=10)


class SyncStatsResponse(BaseModel):
    catalog_items_fetched: int
    listings_saved: int
    inventory_items_fetched: int
    inventory_saved: int
    orders_fetched: int


class SyncResponse(BaseModel):
    """Sync outcome with per-resource counts and errors."""

    success: bool
    message: str
    stats: SyncStatsResponse
    errors: dict[str, str] = {}
    hint: Optional[str] = None


class DiagnosticStep(BaseModel):
    """Result of one diagnostic call."""

    name: str
    success: bool
    status_code: Optional[int] = None
    detail: Optional[str] = None
    diagnosis: Optional[str] = None
    hint: Optional[str] = None
    data: Optional[dict[str, Any]] = None


class DiagnosticsResponse(BaseModel):
    """Step-by-step access check for a stored or environment credential."""

    success: bool
    steps: list[DiagnosticStep]
    hint: Optional[str] = None


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


class EnvCredentialsResponse(BaseModel):
    """Result of saving the environment credentials to an account."""

    success: bool
    message: str
    credential_id: str
    account_id: str
    account_name: str
