"""Login with Amazon (LWA) token exchange and access token cache."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Optional
import logging

import httpx

from sellerdash.config import get_settings
from sellerdash.core.logging import redact

logger = logging.getLogger(__name__)

GRANT_REFRESH_TOKEN = "refresh_token"
GRANT_AUTHORIZATION_CODE = "authorization_code"

REFRESH_GRANT_HINT = (
    "The refresh token was rejected. It may have been revoked in Seller Central; "
    "reconnect the Amazon account to issue a new one."
)
CODE_GRANT_HINT = (
    "The authorization code was rejected. Codes expire after a few minutes and can "
    "only be used once; start the connection again."
)


class TokenExchangeError(Exception):
    """Raised when the LWA token endpoint rejects a grant."""

    def __init__(
        self,
        message: str,
        grant_type: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        self.message = message
        self.grant_type = grant_type
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)

    @property
    def hint(self) -> str:
        if self.grant_type == GRANT_AUTHORIZATION_CODE:
            return CODE_GRANT_HINT
        return REFRESH_GRANT_HINT

    def to_dict(self) -> dict:
        return {
            "status_code": self.status_code,
            "grant_type": self.grant_type,
            "hint": self.hint,
            "error": self.message,
        }


@dataclass
class TokenGrant:
    """Successful response from the LWA token endpoint."""

    access_token: str = field(repr=False)
    expires_in: int
    token_type: str = "bearer"
    refresh_token: Optional[str] = field(default=None, repr=False)


@dataclass
class AccessToken:
    """Short-lived bearer token held in memory only."""

    value: str = field(repr=False)
    expires_at: float  # provider expiry, epoch seconds

    def is_valid(self, now: float, safety_margin: float) -> bool:
        return now < self.expires_at - safety_margin


class TokenExchanger:
    """Perform the two LWA grants against the token endpoint."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.client_id = client_id
        self._client_secret = client_secret
        self.token_url = token_url or settings.AMAZON_LWA_TOKEN_URL
        self.timeout = timeout if timeout is not None else settings.SP_API_TIMEOUT_SECONDS
        self._transport = transport

    async def refresh(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token for a new access token."""
        logger.info("Requesting new access token from LWA")
        return await self._post(
            GRANT_REFRESH_TOKEN,
            {
                "grant_type": GRANT_REFRESH_TOKEN,
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self._client_secret,
            },
        )

    async def exchange_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code (``spapi_oauth_code``) for tokens.

        Args:
            code: Authorization code from the Seller Central callback

        Returns:
            TokenGrant including the long-lived refresh token

        Raises:
            TokenExchangeError: If LWA rejects the code or returns no refresh token
        """
        logger.info("Exchanging authorization code for tokens with LWA")
        grant = await self._post(
            GRANT_AUTHORIZATION_CODE,
            {
                "grant_type": GRANT_AUTHORIZATION_CODE,
                "code": code,
                "client_id": self.client_id,
                "client_secret": self._client_secret,
            },
        )
        if not grant.refresh_token:
            raise TokenExchangeError(
                "Token exchange succeeded but no refresh token was returned",
                GRANT_AUTHORIZATION_CODE,
            )
        return grant

    async def _post(self, grant_type: str, data: dict[str, str]) -> TokenGrant:
        secrets = (data.get("refresh_token"), data.get("code"), self._client_secret)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.token_url,
                    data=data,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.TimeoutException as e:
            logger.error(f"LWA token request timed out ({grant_type})")
            raise TokenExchangeError(
                f"Token exchange timed out after {self.timeout:g}s", grant_type
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"LWA token request failed ({grant_type}): {type(e).__name__}")
            raise TokenExchangeError(
                f"Token exchange failed: {type(e).__name__}", grant_type
            ) from e

        if not response.is_success:
            body = redact(response.text, *secrets)
            error_msg = f"Token exchange failed: {response.status_code} - {body}"
            logger.error(f"LWA {grant_type} grant rejected: {response.status_code} - {body}")
            raise TokenExchangeError(error_msg, grant_type, response.status_code, body)

        try:
            token_data = response.json()
            grant = TokenGrant(
                access_token=token_data["access_token"],
                expires_in=int(token_data["expires_in"]),
                token_type=token_data.get("token_type", "bearer"),
                refresh_token=token_data.get("refresh_token"),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise TokenExchangeError(
                "Token endpoint returned an unexpected response",
                grant_type,
                response.status_code,
            ) from e

        logger.info(f"Successfully obtained access token, expires in: {grant.expires_in} seconds")
        return grant


class TokenCache:
    """Cache one access token for one credential.

    ``get_access_token`` only calls LWA when the cached token is missing or
    inside the safety margin of its expiry. Concurrent callers share a single
    refresh through the instance lock.
    """

    def __init__(
        self,
        exchanger: TokenExchanger,
        refresh_token: str,
        safety_margin: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if safety_margin is None:
            safety_margin = get_settings().SP_API_TOKEN_SAFETY_MARGIN_SECONDS
        self._exchanger = exchanger
        self._refresh_token = refresh_token
        self.safety_margin = safety_margin
        self._clock = clock
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    @property
    def token(self) -> Optional[AccessToken]:
        return self._token

    def is_valid(self) -> bool:
        return self._token is not None and self._token.is_valid(
            self._clock(), self.safety_margin
        )

    def invalidate(self) -> None:
        self._token = None

    async def get_access_token(self) -> str:
        """Return a valid access token, refreshing it if needed.

        Raises:
            TokenExchangeError: If the refresh grant fails
        """
        if self.is_valid():
            logger.debug("Using cached access token")
            return self._token.value  # type: ignore[union-attr]

        async with self._lock:
            # Another waiter may have refreshed while we queued on the lock
            if self.is_valid():
                return self._token.value  # type: ignore[union-attr]

            grant = await self._exchanger.refresh(self._refresh_token)
            self._token = AccessToken(
                value=grant.access_token,
                expires_at=self._clock() + grant.expires_in,
            )
            return self._token.value
