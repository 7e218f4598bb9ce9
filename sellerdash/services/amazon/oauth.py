"""Seller Central authorization (OAuth) handshake.

Flow:
1. ``initiate`` creates the account being connected and returns the consent
   URL. The new account id is the ``state`` parameter.
2. Amazon redirects the seller to the callback with ``spapi_oauth_code``,
   ``state`` and ``selling_partner_id``.
3. ``handle_callback`` resolves ``state`` to the account, exchanges the code
   for a refresh token and upserts the account's credential.

The callback cannot rely on the dashboard session surviving the round trip
through Seller Central, so the account lookup is its only check.
"""

import enum
import json
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode
import logging

import httpx

from sellerdash.config import Settings, get_settings
from sellerdash.core.logging import redact
from sellerdash.models.account import Account
from sellerdash.models.amazon_credential import AmazonCredential
from sellerdash.services.amazon import regions
from sellerdash.services.amazon.tokens import TokenExchangeError, TokenExchanger
from sellerdash.services.storage import PersistenceError, Storage

logger = logging.getLogger(__name__)


class HandshakeState(str, enum.Enum):
    """Where a connection attempt stands."""

    UNINITIATED = "uninitiated"
    AUTHORIZATION_PENDING = "authorization_pending"
    CALLBACK_RECEIVED = "callback_received"
    CREDENTIAL_PERSISTED = "credential_persisted"
    ERROR = "error"


class AmazonOAuthError(Exception):
    """Custom exception for Amazon authorization errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class InvalidCallbackStateError(AmazonOAuthError):
    """The callback ``state`` does not match any account we created."""

    def __init__(self, state: Optional[str]):
        self.state = state
        super().__init__("Invalid or unknown state parameter", 400)


@dataclass
class AuthorizationRequest:
    """Result of starting a connection."""

    authorization_url: str
    account_id: str
    marketplace: str
    state: HandshakeState = HandshakeState.AUTHORIZATION_PENDING


@dataclass
class CallbackResult:
    """Outcome of a callback, rendered on the confirmation page."""

    state: HandshakeState
    account_id: Optional[str] = None
    credential_id: Optional[str] = None
    created: bool = False
    error_code: Optional[str] = None
    message: Optional[str] = None
    status_code: int = 200

    @property
    def success(self) -> bool:
        return self.state == HandshakeState.CREDENTIAL_PERSISTED


class AmazonOAuthService:
    """Handle the Seller Central website authorization workflow."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    def _exchanger(self) -> TokenExchanger:
        return TokenExchanger(
            client_id=self.settings.AMAZON_LWA_CLIENT_ID,
            client_secret=self.settings.AMAZON_LWA_CLIENT_SECRET,
            token_url=self.settings.AMAZON_LWA_TOKEN_URL,
            timeout=self.settings.SP_API_TIMEOUT_SECONDS,
            transport=self._transport,
        )

    def get_authorization_url(self, account_id: str, redirect_uri: str) -> str:
        """Build the Seller Central consent URL.

        No ``version=beta`` parameter: that would authorize the draft
        application instead of the published one.
        """
        params = {
            "application_id": self.settings.AMAZON_SP_API_APP_ID,
            "state": account_id,
            "redirect_uri": redirect_uri,
        }
        return f"{self.settings.AMAZON_CONSENT_URL}?{urlencode(params)}"

    async def initiate(
        self,
        storage: Storage,
        owner_id: str,
        account_name: str,
        marketplace: str,
        redirect_uri: str,
    ) -> AuthorizationRequest:
        """Create the account to connect and return the consent URL.

        Args:
            storage: Storage collaborator
            owner_id: Dashboard user starting the connection
            account_name: Display (brand) name for the new account
            marketplace: Marketplace code the seller is connecting (US, DE, ...)
            redirect_uri: Callback URL on this API's own origin

        Raises:
            AmazonOAuthError: If the marketplace code is unknown
            PersistenceError: If the account cannot be created
        """
        if not regions.is_known_marketplace(marketplace):
            raise AmazonOAuthError(f"Unsupported marketplace: {marketplace}", 400)

        account = await storage.create_account(owner_id=owner_id, brand_name=account_name)
        await storage.create_marketplace_connection(account.id, marketplace)

        url = self.get_authorization_url(account.id, redirect_uri)
        logger.info(f"Generated Amazon authorization URL for account {account.id}")
        return AuthorizationRequest(
            authorization_url=url,
            account_id=account.id,
            marketplace=marketplace,
        )

    async def verify_state(self, storage: Storage, state: Optional[str]) -> Account:
        """Resolve the callback state to the account it was issued for."""
        account = await storage.get_account(state) if state else None
        if account is None:
            logger.warning("Rejected Amazon callback with unknown state")
            raise InvalidCallbackStateError(state)
        return account

    async def _region_for(self, storage: Storage, account_id: str) -> tuple[str, list[str]]:
        connections = await storage.get_marketplace_connections(account_id)
        codes = [c.marketplace for c in connections if c.is_active]
        if not codes:
            return regions.DEFAULT_REGION, []
        return (
            regions.region_for_marketplace(codes[0]),
            [regions.marketplace_id_for(code) for code in codes],
        )

    async def upsert_credential(
        self,
        storage: Storage,
        account: Account,
        refresh_token: str,
        selling_partner_id: Optional[str],
    ) -> tuple[AmazonCredential, bool]:
        """Store the refresh token for ``account``.

        Updates the existing credential when there is one, so a repeated
        callback for the same account never creates a second row.

        Returns:
            Tuple of (credential, created)
        """
        # A failed insert rolls back the session and expires `account`
        account_id = account.id
        client_id = self.settings.AMAZON_LWA_CLIENT_ID
        client_secret = self.settings.AMAZON_LWA_CLIENT_SECRET

        existing = await storage.get_credentials_by_account(account_id)
        if existing is None:
            region, marketplace_ids = await self._region_for(storage, account_id)
            try:
                credential = await storage.create_credentials(
                    account_id=account_id,
                    lwa_client_id=client_id,
                    lwa_client_secret=client_secret,
                    refresh_token=refresh_token,
                    region=region,
                    seller_id=selling_partner_id or None,
                    marketplace_ids=json.dumps(marketplace_ids) if marketplace_ids else None,
                    is_active=True,
                )
                logger.info(f"Created Amazon credential {credential.id} for account {account_id}")
                return credential, True
            except PersistenceError as e:
                if not e.conflict:
                    raise
                # A concurrent callback for the same account inserted first
                existing = await storage.get_credentials_by_account(account_id)
                if existing is None:
                    raise

        credential = await storage.update_credentials(
            existing,
            lwa_client_id=client_id,
            lwa_client_secret=client_secret,
            refresh_token=refresh_token,
            seller_id=existing.seller_id or selling_partner_id or None,
            is_active=True,
        )
        logger.info(f"Updated Amazon credential {credential.id} for account {account_id}")
        return credential, False

    async def handle_callback(
        self,
        storage: Storage,
        code: Optional[str],
        state: Optional[str],
        selling_partner_id: Optional[str] = None,
    ) -> CallbackResult:
        """Run the callback leg of the handshake.

        Never raises for expected failures; the returned result carries the
        final state and a message safe to show to the seller.
        """
        logger.info(
            f"Amazon OAuth callback received: code {'present' if code else 'missing'}, "
            f"selling partner {selling_partner_id or 'not provided'}"
        )

        if not code:
            return CallbackResult(
                state=HandshakeState.ERROR,
                account_id=None,
                error_code="missing_code",
                message="No authorization code was received from Amazon.",
                status_code=400,
            )

        try:
            account = await self.verify_state(storage, state)
        except InvalidCallbackStateError:
            return CallbackResult(
                state=HandshakeState.ERROR,
                error_code="invalid_state",
                message="This authorization link is not valid. Start the connection again.",
                status_code=400,
            )
        except PersistenceError as e:
            return CallbackResult(
                state=HandshakeState.ERROR,
                error_code="db_error",
                message=f"Could not verify the account: {e.message}",
                status_code=500,
            )

        result = CallbackResult(state=HandshakeState.CALLBACK_RECEIVED, account_id=account.id)

        try:
            grant = await self._exchanger().exchange_code(code)
        except TokenExchangeError as e:
            result.state = HandshakeState.ERROR
            result.error_code = "token_exchange_failed"
            result.message = f"Amazon rejected the authorization. {e.hint}"
            result.status_code = 502
            return result

        refresh_token = grant.refresh_token or ""
        try:
            credential, created = await self.upsert_credential(
                storage, account, refresh_token, selling_partner_id
            )
        except PersistenceError as e:
            result.state = HandshakeState.ERROR
            result.error_code = "db_save_failed"
            result.message = redact(
                f"Could not save the Amazon credentials: {e.message}",
                refresh_token,
                self.settings.AMAZON_LWA_CLIENT_SECRET,
            )
            result.status_code = 500
            return result

        result.state = HandshakeState.CREDENTIAL_PERSISTED
        result.credential_id = credential.id
        result.created = created
        result.message = "Amazon account connected!"
        return result


# Singleton instance
oauth_service = AmazonOAuthService()
