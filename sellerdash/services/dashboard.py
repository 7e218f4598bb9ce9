"""Dashboard, listing and inventory views for a connected account."""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
import logging

import httpx

from sellerdash.config import Settings, get_settings
from sellerdash.models.amazon_credential import AmazonCredential
from sellerdash.models.catalog import DashboardMetric, InventoryItem
from sellerdash.schemas.dashboard import (
    Alert,
    DashboardResponse,
    InventoryResponse,
    InventorySummary,
    KPIs,
    ListingResponse,
    PPCPoint,
    SalesPoint,
)
from sellerdash.services.amazon import regions
from sellerdash.services.amazon.client import AmazonSPAPIClient, APIRequestError
from sellerdash.services.amazon.sync import inventory_fields, inventory_sku, listing_fields
from sellerdash.services.amazon.tokens import TokenExchangeError
from sellerdash.services.storage import Storage

logger = logging.getLogger(__name__)

LISTINGS_REPORT_TYPE = "GET_MERCHANT_LISTINGS_ALL_DATA"


class AmazonNotConnectedError(Exception):
    """The account has no active Amazon credential."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        self.message = "Amazon account not connected or inactive"
        super().__init__(self.message)


def percent_change(current, previous) -> int:
    """Whole-number percentage change; 0 when there is no baseline."""
    current = float(current or 0)
    previous = float(previous or 0)
    if previous == 0:
        return 0
    return int(round((current - previous) / previous * 100))


def build_metrics_response(metrics: list[DashboardMetric]) -> Optional[DashboardResponse]:
    """Dashboard from stored daily metrics, or None when there are none.

    KPIs come from the latest day and are compared with the day before it.
    """
    if not metrics:
        return None

    ordered = sorted(metrics, key=lambda m: m.date)
    latest = ordered[-1]
    previous = ordered[-2] if len(ordered) > 1 else latest

    kpis = KPIs(
        total_sales=float(latest.total_sales or 0),
        total_orders=latest.total_orders or 0,
        ppc_spend=float(latest.ppc_spend or 0),
        roas=float(latest.roas or 0),
        sales_change=percent_change(latest.total_sales, previous.total_sales),
        orders_change=percent_change(latest.total_orders, previous.total_orders),
        spend_change=percent_change(latest.ppc_spend, previous.ppc_spend),
        roas_change=percent_change(latest.roas, previous.roas),
    )
    return DashboardResponse(
        kpis=kpis,
        sales_chart_data=[
            SalesPoint(date=m.date.date().isoformat(), sales=float(m.total_sales or 0))
            for m in ordered
        ],
        ppc_chart_data=[
            PPCPoint(
                date=m.date.date().isoformat(),
                spend=float(m.ppc_spend or 0),
                sales=float(m.total_sales or 0),
            )
            for m in ordered
        ],
        source="persisted",
    )


def build_orders_response(
    orders: list[dict], days: int = 30, today: Optional[date] = None
) -> DashboardResponse:
    """Dashboard computed from SP-API orders.

    Args:
        orders: Orders as returned by the Orders API
        days: Number of days in the sales chart, ending today
        today: Last chart day (defaults to the current UTC date)
    """
    today = today or datetime.now(timezone.utc).date()

    total_sales = 0.0
    sales_by_date: dict[str, float] = {}
    for order in orders:
        amount = float((order.get("OrderTotal") or {}).get("Amount") or 0)
        total_sales += amount
        order_date = (order.get("PurchaseDate") or "")[:10] or today.isoformat()
        sales_by_date[order_date] = sales_by_date.get(order_date, 0.0) + amount

    sales_chart = []
    for offset in range(days - 1, -1, -1):
        day = (today - timedelta(days=offset)).isoformat()
        sales_chart.append(SalesPoint(date=day, sales=round(sales_by_date.get(day, 0.0), 2)))

    # PPC needs the Advertising API; spend is reported as zero
    ppc_chart = [PPCPoint(date=p.date, spend=0, sales=p.sales) for p in sales_chart]

    alerts = []
    if not orders:
        alerts.append(
            Alert(
                id="no-orders",
                type="warning",
                title="No Orders Found",
                message=f"No orders found in the last {days} days",
            )
        )

    return DashboardResponse(
        kpis=KPIs(total_sales=round(total_sales, 2), total_orders=len(orders)),
        sales_chart_data=sales_chart,
        ppc_chart_data=ppc_chart,
        alerts=alerts,
        source="live",
    )


def summarize_inventory(items: list[InventoryItem]) -> InventorySummary:
    """Totals over persisted inventory rows. Unknown days-on-hand are ignored."""
    known_doh = [item.doh for item in items if item.doh is not None]
    return InventorySummary(
        total_soh=sum(item.soh for item in items),
        avg_doh=sum(known_doh) / len(known_doh) if known_doh else 0.0,
        items_to_restock=sum(1 for item in items if item.restock_qty and item.restock_qty > 0),
    )


class DashboardService:
    """Read side of the dashboard: live SP-API data with stored fallbacks."""

    def __init__(
        self,
        storage: Storage,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        self._transport = transport

    async def _active_credential(self, account_id: str) -> AmazonCredential:
        credential = await self.storage.get_credentials_by_account(account_id)
        if credential is None or not credential.is_active:
            raise AmazonNotConnectedError(account_id)
        return credential

    def _client(self, credential: AmazonCredential) -> AmazonSPAPIClient:
        return AmazonSPAPIClient(credential, settings=self.settings, transport=self._transport)

    async def get_dashboard(self, account_id: str, marketplace: str) -> DashboardResponse:
        """Build the dashboard for an account marketplace.

        Live order data wins. Stored metrics are served when the account is
        not connected or Amazon cannot be reached.

        Raises:
            AmazonNotConnectedError: If not connected and nothing is stored
            TokenExchangeError: If no access token could be obtained and nothing is stored
        """
        metrics = await self.storage.get_dashboard_metrics(account_id, marketplace)
        fallback = build_metrics_response(metrics)

        try:
            credential = await self._active_credential(account_id)
        except AmazonNotConnectedError:
            if fallback is not None:
                return fallback
            raise

        client = self._client(credential)
        marketplace_id = regions.marketplace_id_for(marketplace)
        days = self.settings.ORDERS_LOOKBACK_DAYS

        try:
            skus: list[dict] = []
            orders: list[dict] = []
            try:
                skus = await client.get_seller_skus(marketplace_id, credential.seller_id or "")
                logger.info(f"Seller SKUs API: fetched {len(skus)} items")
            except APIRequestError as e:
                logger.error(f"Seller SKUs API failed: {e.message}")

            try:
                created_after = datetime.now(timezone.utc) - timedelta(days=days)
                orders = await client.get_orders(marketplace_id, created_after)
                logger.info(f"Orders API: fetched {len(orders)} orders")
            except APIRequestError as e:
                logger.error(f"Orders API failed: {e.message}")

            try:
                report_id = await client.create_report(LISTINGS_REPORT_TYPE, [marketplace_id])
                logger.info(f"Reports API: created report {report_id}")
            except APIRequestError as e:
                logger.error(f"Reports API failed: {e.message}")
        except TokenExchangeError:
            if fallback is not None:
                logger.warning(f"Serving stored metrics for account {account_id}")
                return fallback
            raise

        logger.info(f"Dashboard data for {account_id}: orders={len(orders)}, listings={len(skus)}")
        return build_orders_response(orders, days=days)

    async def get_live_listings(self, account_id: str, marketplace: str) -> list[ListingResponse]:
        """Catalog items from SP-API in listing form.

        Raises:
            AmazonNotConnectedError: If the account is not connected
            APIRequestError: If SP-API rejects the call
            TokenExchangeError: If no access token could be obtained
        """
        credential = await self._active_credential(account_id)
        items = await self._client(credential).get_catalog_items(
            regions.marketplace_id_for(marketplace)
        )
        logger.info(f"Fetched {len(items)} catalog items from Amazon")

        listings = []
        for item in items:
            asin = item.get("asin")
            if not asin:
                continue
            fields = listing_fields(item)
            price = fields.pop("price")
            listings.append(
                ListingResponse(
                    id=asin,
                    account_id=account_id,
                    marketplace=marketplace,
                    asin=asin,
                    price=float(price) if price is not None else None,
                    **fields,
                )
            )
        return listings

    async def get_live_inventory(
        self, account_id: str, marketplace: str
    ) -> list[InventoryResponse]:
        """FBA inventory summaries from SP-API.

        Raises:
            AmazonNotConnectedError: If the account is not connected
            APIRequestError: If SP-API rejects the call
            TokenExchangeError: If no access token could be obtained
        """
        credential = await self._active_credential(account_id)
        items = await self._client(credential).get_inventory_summaries(
            regions.marketplace_id_for(marketplace)
        )
        logger.info(f"Fetched {len(items)} inventory items from Amazon")

        inventory = []
        for item in items:
            sku = inventory_sku(item)
            if not sku:
                continue
            inventory.append(
                InventoryResponse(
                    id=item.get("fnSku") or sku,
                    account_id=account_id,
                    marketplace=marketplace,
                    sku=sku,
                    **inventory_fields(item),
                )
            )
        return inventory

    async def get_inventory_summary(self, account_id: str, marketplace: str) -> InventorySummary:
        items = await self.storage.get_inventory_by_account(account_id, marketplace)
        return summarize_inventory(items)
