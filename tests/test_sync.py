"""Tests for account sync."""

import pytest

from sellerdash.services.amazon.client import AmazonSPAPIClient
from sellerdash.services.amazon.sync import (
    AccountSyncService,
    inventory_fields,
    listing_fields,
)

CATALOG_ITEMS = {
    "items": [
        {
            "asin": "B000TEST01",
            "summaries": [
                {
                    "itemName": "Stainless Water Bottle",
                    "productTypes": [{"productType": "BOTTLE"}],
                    "mainImage": {"link": "https://m.media-amazon.com/images/I/1.jpg"},
                }
            ],
        },
        {"asin": "B000TEST02", "itemName": "Bamboo Cutting Board"},
        {"summaries": [{"itemName": "No ASIN"}]},
    ]
}
INVENTORY = {
    "payload": {
        "inventorySummaries": [
            {"sellerSku": "SKU-1", "fnSku": "X001", "productName": "Bottle", "totalQuantity": 42},
            {"fnSku": "X002", "productName": "Board", "totalQuantity": 0},
        ]
    }
}
ORDERS = {"payload": {"Orders": [{"AmazonOrderId": "111-1"}, {"AmazonOrderId": "111-2"}]}}


@pytest.fixture
def sync_service(storage, credential, settings, fake_amazon) -> AccountSyncService:
    client = AmazonSPAPIClient(credential, settings=settings, transport=fake_amazon.transport)
    return AccountSyncService(storage, client, settings=settings)


def test_listing_fields_from_summary():
    fields = listing_fields(CATALOG_ITEMS["items"][0])

    assert fields["title"] == "Stainless Water Bottle"
    assert fields["category"] == "BOTTLE"
    assert fields["image_url"].endswith("1.jpg")
    assert fields["price"] is None
    assert fields["status"] == "active"


def test_listing_fields_defaults():
    fields = listing_fields({"asin": "B1"})

    assert fields["title"] == "Untitled Product"
    assert fields["category"] == "General"


def test_inventory_fields_leave_days_on_hand_unknown():
    fields = inventory_fields(INVENTORY["payload"]["inventorySummaries"][0])

    assert fields == {
        "product_name": "Bottle",
        "soh": 42,
        "doh": None,
        "restock_qty": None,
        "category": "FBA",
    }


@pytest.mark.asyncio
async def test_full_sync(sync_service, storage, account, fake_amazon):
    fake_amazon.respond(fake_amazon.CATALOG, json=CATALOG_ITEMS)
    fake_amazon.respond(fake_amazon.INVENTORY, json=INVENTORY)
    fake_amazon.respond(fake_amazon.ORDERS, json=ORDERS)

    result = await sync_service.sync(account.id, "US")

    assert result.success
    assert result.errors == {}
    assert result.completed == ["catalog", "inventory", "orders"]
    assert result.stats.to_dict() == {
        "catalog_items_fetched": 3,
        "listings_saved": 2,
        "inventory_items_fetched": 2,
        "inventory_saved": 2,
        "orders_fetched": 2,
    }
    assert fake_amazon.token_calls == 1

    listings = await storage.get_listings_by_account(account.id, "US")
    assert sorted(listing.asin for listing in listings) == ["B000TEST01", "B000TEST02"]
    inventory = await storage.get_inventory_by_account(account.id, "US")
    assert sorted(item.sku for item in inventory) == ["SKU-1", "X002"]
    credential = await storage.get_credentials_by_account(account.id)
    assert credential.last_synced_at is not None


@pytest.mark.asyncio
async def test_orders_failure_keeps_catalog(sync_service, storage, account, fake_amazon):
    fake_amazon.respond(fake_amazon.CATALOG, json=CATALOG_ITEMS)
    fake_amazon.respond(fake_amazon.INVENTORY, json=INVENTORY)
    fake_amazon.respond(fake_amazon.ORDERS, status_code=500, json={"errors": [{"code": "InternalFailure"}]})

    result = await sync_service.sync(account.id, "US")

    assert not result.success
    assert list(result.errors) == ["orders"]
    assert result.stats.listings_saved == 2
    assert result.stats.orders_fetched == 0
    assert result.message == "Amazon sync completed with errors"

    listings = await storage.get_listings_by_account(account.id, "US")
    assert len(listings) == 2
    credential = await storage.get_credentials_by_account(account.id)
    assert credential.last_synced_at is not None


@pytest.mark.asyncio
async def test_forbidden_resource_does_not_stop_sync(sync_service, account, fake_amazon):
    fake_amazon.respond(fake_amazon.CATALOG, json=CATALOG_ITEMS)
    fake_amazon.respond(fake_amazon.INVENTORY, status_code=403, json={"errors": []})
    fake_amazon.respond(fake_amazon.ORDERS, json=ORDERS)

    result = await sync_service.sync(account.id, "US")

    assert result.completed == ["catalog", "orders"]
    assert "inventory" in result.errors
    assert result.stats.orders_fetched == 2
    assert "DRAFT" in result.hint


@pytest.mark.asyncio
async def test_token_failure_aborts_sync(sync_service, storage, account, fake_amazon):
    fake_amazon.token_status = 400

    result = await sync_service.sync(account.id, "US")

    assert result.completed == []
    assert list(result.errors) == ["catalog"]
    assert result.message == "Failed to sync Amazon data"
    assert fake_amazon.api_requests == []
    assert fake_amazon.token_calls == 1
    credential = await storage.get_credentials_by_account(account.id)
    assert credential.last_synced_at is None


@pytest.mark.asyncio
async def test_resync_updates_listings_in_place(sync_service, storage, account, fake_amazon):
    fake_amazon.respond(fake_amazon.CATALOG, json=CATALOG_ITEMS)
    fake_amazon.respond(fake_amazon.INVENTORY, json=INVENTORY)
    fake_amazon.respond(fake_amazon.ORDERS, json=ORDERS)

    await sync_service.sync(account.id, "US")
    await sync_service.sync(account.id, "US")

    listings = await storage.get_listings_by_account(account.id, "US")
    assert len(listings) == 2


@pytest.mark.asyncio
async def test_sync_caps_saved_items(storage, credential, account, settings, fake_amazon):
    capped = settings.model_copy(update={"SYNC_MAX_ITEMS": 1})
    client = AmazonSPAPIClient(credential, settings=capped, transport=fake_amazon.transport)
    fake_amazon.respond(fake_amazon.CATALOG, json=CATALOG_ITEMS)
    fake_amazon.respond(fake_amazon.INVENTORY, json=INVENTORY)
    fake_amazon.respond(fake_amazon.ORDERS, json=ORDERS)

    result = await AccountSyncService(storage, client, settings=capped).sync(account.id, "US")

    assert result.stats.catalog_items_fetched == 3
    assert result.stats.listings_saved == 1
    assert result.stats.inventory_saved == 1
