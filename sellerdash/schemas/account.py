"""Account schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AccountSummary(BaseModel):
    """Seller account for list views."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    brand_name: str
    seller_id: Optional[str]
    status: str
    is_favorite: bool
    created_at: datetime


class MarketplaceConnectionResponse(BaseModel):
    """Marketplace enabled for an account."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    account_id: str
    marketplace: str
    is_active: bool
