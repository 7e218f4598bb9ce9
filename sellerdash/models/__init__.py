"""Database models package."""

from sellerdash.models.base import Base
from sellerdash.models.account import Account, MarketplaceConnection
from sellerdash.models.amazon_credential import AmazonCredential
from sellerdash.models.catalog import DashboardMetric, InventoryItem, Listing

__all__ = [
    "Base",
    "Account",
    "MarketplaceConnection",
    "AmazonCredential",
    "Listing",
    "InventoryItem",
    "DashboardMetric",
]
