"""Async HTTP client for the Amazon Selling Partner API.

Authentication is LWA-only: every request carries the access token in the
``x-amz-access-token`` header. SP-API stopped requiring AWS SigV4 signing in
October 2023, so no IAM credentials are involved.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Union
from urllib.parse import quote, unquote, urlencode
import logging

import httpx

from sellerdash.config import Settings, get_settings
from sellerdash.core.logging import redact
from sellerdash.models.amazon_credential import AmazonCredential
from sellerdash.services.amazon import regions
from sellerdash.services.amazon.tokens import TokenCache, TokenExchanger

logger = logging.getLogger(__name__)

PUBLISHED_APP_DIAGNOSIS = "published_vs_draft_application"
PUBLISHED_APP_HINT = (
    "The access token was accepted by Login with Amazon but rejected by SP-API. "
    "This usually means the refresh token was issued for the DRAFT version of the "
    "application rather than the PUBLISHED one. Revoke the authorization in Seller "
    "Central (Apps & Services > Manage Your Apps) and reconnect the account."
)

CATALOG_ITEMS_PATH = "/catalog/2022-04-01/items"
REPORTS_PATH = "/reports/2021-06-30/reports"


class APIRequestError(Exception):
    """Raised when SP-API rejects an authenticated call or cannot be reached."""

    def __init__(
        self,
        status_code: Optional[int],
        message: str,
        url: str,
        response_body: Optional[str] = None,
    ):
        self.status_code = status_code
        self.message = message
        self.url = url
        self.response_body = response_body
        super().__init__(f"SP-API Error {status_code}: {message}")

    @property
    def diagnosis(self) -> Optional[str]:
        if self.status_code == 403:
            return PUBLISHED_APP_DIAGNOSIS
        return None

    @property
    def hint(self) -> Optional[str]:
        if self.status_code == 403:
            return PUBLISHED_APP_HINT
        return None

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "status_code": self.status_code,
            "url": self.url,
            "diagnosis": self.diagnosis,
            "hint": self.hint,
            "response_body": self.response_body,
        }


def _parse_query(query: str) -> dict[str, str]:
    # unquote, not unquote_plus: a literal "+" in a timestamp offset must survive
    params: dict[str, str] = {}
    for part in query.split("&"):
        if not part:
            continue
        key, _, value = part.partition("=")
        params[unquote(key)] = unquote(value)
    return params


def _payload(data: Any, key: str) -> list:
    """Pull ``key`` from a response, looking inside ``payload`` when present."""
    if not isinstance(data, dict):
        return []
    container = data.get("payload") if isinstance(data.get("payload"), dict) else data
    return container.get(key) or []


class AmazonSPAPIClient:
    """SP-API client bound to one stored credential.

    Features:
    - Access token cached per instance, renewed inside the safety margin
    - Regional host routing from the credential's region
    - Typed errors, no automatic retries (callers decide how to degrade)
    """

    def __init__(
        self,
        credential: AmazonCredential,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize client from a stored credential.

        The LWA identity configured in the environment takes precedence over
        the one stored with the credential: refresh tokens are issued against
        the published application, whose identity lives in the environment.

        Args:
            credential: Stored Amazon credential
            settings: Settings override (defaults to the cached settings)
            transport: httpx transport override, used by tests
            clock: Time source in epoch seconds
        """
        settings = settings or get_settings()

        env_client_id = settings.AMAZON_LWA_CLIENT_ID
        if env_client_id and env_client_id != credential.lwa_client_id:
            logger.warning(
                f"LWA client id in the environment differs from the one stored for "
                f"credential {credential.id}; using the environment value. Requests "
                f"will fail with 403 if the refresh token was issued to another client."
            )

        self.credential_id = credential.id
        self.account_id = credential.account_id
        self.region = credential.region
        self.seller_id = credential.seller_id
        self.client_id = env_client_id or credential.lwa_client_id
        self.timeout = settings.SP_API_TIMEOUT_SECONDS
        self.user_agent = settings.SP_API_USER_AGENT
        self._transport = transport

        exchanger = TokenExchanger(
            client_id=self.client_id,
            client_secret=settings.AMAZON_LWA_CLIENT_SECRET or credential.lwa_client_secret,
            token_url=settings.AMAZON_LWA_TOKEN_URL,
            timeout=self.timeout,
            transport=transport,
        )
        self.token_cache = TokenCache(
            exchanger,
            credential.refresh_token,
            safety_margin=settings.SP_API_TOKEN_SAFETY_MARGIN_SECONDS,
            clock=clock,
        )

        logger.info(f"Initialized SP-API client for region {self.region} (LWA-only auth)")

    @property
    def host(self) -> str:
        return regions.host_for(self.region)

    async def get_access_token(self) -> str:
        return await self.token_cache.get_access_token()

    def build_url(self, path: str, marketplace_ids: Optional[list[str]] = None) -> str:
        """Resolve ``path`` against the regional host.

        Query parameters already present in ``path`` are kept; a
        ``marketplaceIds`` parameter is added when marketplace scoping applies.
        """
        base_path, _, existing_query = path.partition("?")
        params = _parse_query(existing_query)

        if marketplace_ids:
            params["marketplaceIds"] = ",".join(marketplace_ids)

        url = f"https://{self.host}{base_path}"
        if params:
            url = f"{url}?{urlencode(params, safe=',:')}"
        return url

    async def make_request(
        self,
        path: str,
        method: str = "GET",
        marketplace_ids: Optional[list[str]] = None,
        body: Optional[dict] = None,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Make an authenticated request to SP-API.

        Args:
            path: API path, optionally with a query string
            method: HTTP method
            marketplace_ids: Marketplace ids to scope the call to
            body: JSON body for POST/PUT requests
            extra_headers: Additional request headers

        Returns:
            Parsed JSON response

        Raises:
            TokenExchangeError: If no access token could be obtained
            APIRequestError: If SP-API returns a non-2xx status or times out
        """
        access_token = await self.get_access_token()
        url = self.build_url(path, marketplace_ids)

        headers = {
            "x-amz-access-token": access_token,
            "content-type": "application/json",
            "accept": "application/json",
            "user-agent": self.user_agent,
        }
        if extra_headers:
            headers.update(extra_headers)

        logger.info(f"SP-API request: {method} {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, headers=headers, json=body)
        except httpx.TimeoutException as e:
            logger.error(f"SP-API request timed out: {method} {url}")
            raise APIRequestError(
                None, f"Request timed out after {self.timeout:g}s", url
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"SP-API request failed: {method} {url} ({type(e).__name__})")
            raise APIRequestError(None, f"Request failed: {type(e).__name__}", url) from e

        if not response.is_success:
            response_body = redact(response.text, access_token)
            logger.error(f"SP-API error - status: {response.status_code}, url: {url}")
            logger.error(f"SP-API error response: {response_body}")
            if response.status_code == 401:
                # Next call fetches a fresh token; this one still fails.
                self.token_cache.invalidate()
            raise APIRequestError(
                status_code=response.status_code,
                message=f"SP-API request failed ({response.status_code}): {response_body}",
                url=url,
                response_body=response_body,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise APIRequestError(
                response.status_code,
                "SP-API returned a non-JSON response",
                url,
                redact(response.text, access_token),
            ) from e

    # Resource operations

    async def get_catalog_items(self, marketplace_id: str) -> list[dict]:
        """Get catalog items for a marketplace."""
        data = await self.make_request(CATALOG_ITEMS_PATH, "GET", [marketplace_id])
        return _payload(data, "items")

    async def get_seller_skus(self, marketplace_id: str, seller_id: str) -> list[dict]:
        """Get the seller's own catalog items by seller id."""
        path = f"{CATALOG_ITEMS_PATH}?sellerId={quote(seller_id)}&pageSize=20"
        data = await self.make_request(path, "GET", [marketplace_id])
        return _payload(data, "items")

    async def create_report(self, report_type: str, marketplace_ids: list[str]) -> Optional[str]:
        """Request a report; returns the report id."""
        data = await self.make_request(
            REPORTS_PATH,
            "POST",
            body={"reportType": report_type, "marketplaceIds": marketplace_ids},
        )
        if not isinstance(data, dict):
            return None
        return data.get("reportId")

    async def get_report(self, report_id: str) -> dict:
        return await self.make_request(f"{REPORTS_PATH}/{quote(report_id)}", "GET")

    async def get_inventory_summaries(self, marketplace_id: str) -> list[dict]:
        """Get FBA inventory summaries for a marketplace."""
        path = (
            "/fba/inventory/v1/summaries"
            f"?details=true&granularityType=Marketplace&granularityId={marketplace_id}"
        )
        data = await self.make_request(path, "GET", [marketplace_id])
        return _payload(data, "inventorySummaries")

    async def get_orders(
        self, marketplace_id: str, created_after: Union[datetime, str]
    ) -> list[dict]:
        """Get orders created after a timestamp (ISO 8601)."""
        if isinstance(created_after, datetime):
            created_after = created_after.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        path = f"/orders/v0/orders?CreatedAfter={created_after}"
        data = await self.make_request(path, "GET", [marketplace_id])
        return _payload(data, "Orders")

    async def get_seller_metrics(
        self,
        marketplace_id: str,
        interval: Optional[str] = None,
        granularity: str = "Total",
    ) -> dict:
        """Get aggregated order metrics (default: the last 30 days)."""
        if interval is None:
            end = datetime.now(timezone.utc).replace(microsecond=0)
            start = end - timedelta(days=30)
            interval = f"{start.strftime('%Y-%m-%dT%H:%M:%SZ')}--{end.strftime('%Y-%m-%dT%H:%M:%SZ')}"
        path = f"/sales/v1/orderMetrics?interval={interval}&granularity={granularity}"
        return await self.make_request(path, "GET", [marketplace_id])

    async def get_advertising_campaigns(self, profile_id: str) -> list[dict]:
        """Get Sponsored Products campaigns for an advertising profile.

        Campaign data belongs to the Advertising API, which needs its own
        authorization; with an SP-API-only grant this call is rejected.
        """
        data = await self.make_request(
            "/sp/campaigns?stateFilter=enabled,paused,archived",
            "GET",
            extra_headers={"Amazon-Advertising-API-Scope": profile_id},
        )
        if isinstance(data, list):
            return data
        return _payload(data, "campaigns")

    # Diagnostics

    async def test_marketplace_participations(self) -> dict:
        """Call the simplest SP-API endpoint to verify basic access."""
        data = await self.make_request("/sellers/v1/marketplaceParticipations", "GET")
        participations = data.get("payload") if isinstance(data, dict) else None
        logger.info(
            f"Marketplace participations SUCCESS - found {len(participations or [])} marketplaces"
        )
        return data

    async def test_public_catalog_search(
        self, marketplace_id: str, keywords: str = "laptop"
    ) -> dict:
        """Search the public catalog, which needs no seller-specific role."""
        path = f"{CATALOG_ITEMS_PATH}?keywords={quote(keywords)}"
        data = await self.make_request(path, "GET", [marketplace_id])
        logger.info(f"Public catalog search SUCCESS - found {len(_payload(data, 'items'))} items")
        return data

    # Region helpers

    @staticmethod
    def get_marketplace_id(marketplace: str) -> str:
        return regions.marketplace_id_for(marketplace)

    @staticmethod
    def get_marketplaces_for_region(region: str) -> list[str]:
        return regions.marketplace_codes_for(region)
