"""Amazon Selling Partner API integration services.

This package provides:
- Login with Amazon token exchange and access token caching
- Region and marketplace routing
- SP-API request client
- Seller Central authorization (OAuth) handshake
- Catalog, inventory and order sync
"""

from sellerdash.services.amazon.tokens import (
    AccessToken,
    TokenCache,
    TokenExchanger,
    TokenExchangeError,
    TokenGrant,
)
from sellerdash.services.amazon.regions import (
    host_for,
    marketplace_codes_for,
    marketplace_id_for,
    region_for_marketplace,
)
from sellerdash.services.amazon.client import (
    AmazonSPAPIClient,
    APIRequestError,
)
from sellerdash.services.amazon.oauth import (
    oauth_service,
    AmazonOAuthService,
    AmazonOAuthError,
    CallbackResult,
    HandshakeState,
    InvalidCallbackStateError,
)
from sellerdash.services.amazon.sync import (
    AccountSyncService,
    SyncResult,
    SyncStats,
    sync_account,
)

__all__ = [
    # Tokens
    "AccessToken",
    "TokenCache",
    "TokenExchanger",
    "TokenExchangeError",
    "TokenGrant",
    # Regions
    "host_for",
    "marketplace_codes_for",
    "marketplace_id_for",
    "region_for_marketplace",
    # Client
    "AmazonSPAPIClient",
    "APIRequestError",
    # OAuth
    "oauth_service",
    "AmazonOAuthService",
    "AmazonOAuthError",
    "CallbackResult",
    "HandshakeState",
    "InvalidCallbackStateError",
    # Sync
    "AccountSyncService",
    "SyncResult",
    "SyncStats",
    "sync_account",
]
