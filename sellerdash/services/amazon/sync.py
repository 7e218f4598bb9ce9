"""Pull catalog, inventory and orders for one account marketplace."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional
import logging

import httpx

from sellerdash.config import Settings, get_settings
from sellerdash.models.amazon_credential import AmazonCredential
from sellerdash.services.amazon import regions
from sellerdash.services.amazon.client import AmazonSPAPIClient, APIRequestError
from sellerdash.services.amazon.tokens import TokenExchangeError
from sellerdash.services.storage import PersistenceError, Storage

logger = logging.getLogger(__name__)

RESOURCE_CATALOG = "catalog"
RESOURCE_INVENTORY = "inventory"
RESOURCE_ORDERS = "orders"


def _first_summary(item: dict) -> dict:
    summaries = item.get("summaries") or []
    return summaries[0] if summaries and isinstance(summaries[0], dict) else {}


def _to_decimal(value) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def listing_fields(item: dict) -> dict:
    """Map a catalog item to ``Listing`` column values.

    Catalog items carry no offer data, so price and stock stay empty unless
    the item happens to include them.
    """
    summary = _first_summary(item)
    product_types = summary.get("productTypes") or item.get("productTypes") or []
    category = None
    if product_types and isinstance(product_types[0], dict):
        category = product_types[0].get("productType")
    category = category or item.get("productType") or "General"

    return {
        "sku": item.get("sku"),
        "title": summary.get("itemName") or item.get("itemName") or "Untitled Product",
        "image_url": (summary.get("mainImage") or {}).get("link"),
        "category": category,
        "price": _to_decimal(item.get("price")),
        "stock": item.get("quantity"),
        "status": "active",
    }


def inventory_fields(item: dict) -> dict:
    """Map an FBA inventory summary to ``InventoryItem`` column values.

    Days on hand needs sales velocity, which inventory summaries do not
    report, so it is left unknown.
    """
    return {
        "product_name": item.get("productName") or "Unknown Product",
        "soh": int(item.get("totalQuantity") or 0),
        "doh": None,
        "restock_qty": None,
        "category": item.get("condition") or "FBA",
    }


def inventory_sku(item: dict) -> Optional[str]:
    return item.get("sellerSku") or item.get("fnSku")


@dataclass
class SyncStats:
    """Per-resource counts reported by a sync."""

    catalog_items_fetched: int = 0
    listings_saved: int = 0
    inventory_items_fetched: int = 0
    inventory_saved: int = 0
    orders_fetched: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SyncResult:
    """Outcome of a sync run."""

    account_id: str
    marketplace: str
    stats: SyncStats = field(default_factory=SyncStats)
    completed: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    hint: Optional[str] = None

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        if self.success:
            return "Data synced successfully from Amazon SP-API"
        if self.completed:
            return "Amazon sync completed with errors"
        return "Failed to sync Amazon data"


class AccountSyncService:
    """Sync one account marketplace from SP-API into local storage.

    Resources are fetched one after another. Each resource is committed on
    its own, so a failure in a later step never discards earlier results.
    """

    def __init__(
        self,
        storage: Storage,
        client: AmazonSPAPIClient,
        settings: Optional[Settings] = None,
    ):
        """Initialize service.

        Args:
            storage: Storage collaborator
            client: SP-API client bound to the account's credential
            settings: Settings override
        """
        self.storage = storage
        self.client = client
        self.settings = settings or get_settings()

    async def _sync_catalog(self, result: SyncResult, marketplace_id: str) -> None:
        items = await self.client.get_catalog_items(marketplace_id)
        result.stats.catalog_items_fetched = len(items)
        logger.info(f"Fetched {len(items)} catalog items from Amazon")

        saved = 0
        for item in items[: self.settings.SYNC_MAX_ITEMS]:
            asin = item.get("asin")
            if not asin:
                logger.debug("Skipping catalog item without ASIN")
                continue
            await self.storage.upsert_listing(
                result.account_id, result.marketplace, asin, **listing_fields(item)
            )
            saved += 1
        await self.storage.commit()
        result.stats.listings_saved = saved

    async def _sync_inventory(self, result: SyncResult, marketplace_id: str) -> None:
        items = await self.client.get_inventory_summaries(marketplace_id)
        result.stats.inventory_items_fetched = len(items)
        logger.info(f"Fetched {len(items)} inventory items from Amazon")

        saved = 0
        for item in items[: self.settings.SYNC_MAX_ITEMS]:
            sku = inventory_sku(item)
            if not sku:
                logger.debug("Skipping inventory summary without SKU")
                continue
            await self.storage.upsert_inventory_item(
                result.account_id, result.marketplace, sku, **inventory_fields(item)
            )
            saved += 1
        await self.storage.commit()
        result.stats.inventory_saved = saved

    async def _sync_orders(self, result: SyncResult, marketplace_id: str) -> None:
        created_after = datetime.now(timezone.utc) - timedelta(
            days=self.settings.ORDERS_LOOKBACK_DAYS
        )
        orders = await self.client.get_orders(marketplace_id, created_after)
        result.stats.orders_fetched = len(orders)
        logger.info(f"Fetched {len(orders)} orders from Amazon")

    async def sync(self, account_id: str, marketplace: str) -> SyncResult:
        """Run catalog, inventory and orders sync.

        An API or database failure on one resource is recorded in
        ``errors`` and the next resource still runs. A token failure stops
        the run, since every later call would fail the same way.

        Returns:
            SyncResult with counts and per-resource errors
        """
        result = SyncResult(account_id=account_id, marketplace=marketplace)
        marketplace_id = regions.marketplace_id_for(marketplace)

        logger.info(f"Starting Amazon sync for account {account_id} ({marketplace})")

        steps = (
            (RESOURCE_CATALOG, self._sync_catalog),
            (RESOURCE_INVENTORY, self._sync_inventory),
            (RESOURCE_ORDERS, self._sync_orders),
        )
        for resource, step in steps:
            try:
                await step(result, marketplace_id)
                result.completed.append(resource)
            except APIRequestError as e:
                logger.error(f"Amazon {resource} sync failed: {e.message}")
                result.errors[resource] = e.message
                if e.hint and not result.hint:
                    result.hint = e.hint
            except PersistenceError as e:
                logger.error(f"Saving Amazon {resource} data failed: {e.message}")
                result.errors[resource] = e.message
            except TokenExchangeError as e:
                logger.error(f"Amazon sync aborted at {resource}: {e.message}")
                result.errors[resource] = e.message
                result.hint = e.hint
                break

        if result.completed:
            await self.storage.update_last_synced_at(account_id)

        logger.info(
            f"Amazon sync finished for account {account_id}: "
            f"completed={result.completed}, failed={list(result.errors)}"
        )
        return result


async def sync_account(
    storage: Storage,
    credential: AmazonCredential,
    marketplace: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SyncResult:
    """Convenience function to sync one account marketplace.

    Args:
        storage: Storage collaborator
        credential: The account's stored credential
        marketplace: Marketplace code (US, DE, ...)
        transport: httpx transport override, used by tests

    Returns:
        SyncResult for the run
    """
    client = AmazonSPAPIClient(credential, transport=transport)
    service = AccountSyncService(storage, client)
    return await service.sync(credential.account_id, marketplace)
