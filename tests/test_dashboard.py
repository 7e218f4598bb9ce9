"""Tests for dashboard views."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from sellerdash.models.catalog import DashboardMetric, InventoryItem
from sellerdash.services.dashboard import (
    AmazonNotConnectedError,
    DashboardService,
    build_metrics_response,
    build_orders_response,
    percent_change,
    summarize_inventory,
)


def metric(day: int, sales: str, orders: int, spend: str, roas=None) -> DashboardMetric:
    return DashboardMetric(
        account_id="account-1",
        marketplace="US",
        date=datetime(2024, 5, day, tzinfo=timezone.utc),
        total_sales=Decimal(sales),
        total_orders=orders,
        ppc_spend=Decimal(spend),
        roas=Decimal(roas) if roas is not None else None,
    )


def test_percent_change():
    assert percent_change(150, 100) == 50
    assert percent_change(Decimal("90"), Decimal("120")) == -25
    assert percent_change(10, 0) == 0
    assert percent_change(None, None) == 0


def test_metrics_response_compares_latest_two_days():
    response = build_metrics_response(
        [
            metric(2, "200.00", 20, "50.00", "4.00"),
            metric(1, "100.00", 10, "50.00", "2.00"),
        ]
    )

    assert response.source == "persisted"
    assert response.kpis.total_sales == 200.0
    assert response.kpis.total_orders == 20
    assert response.kpis.sales_change == 100
    assert response.kpis.orders_change == 100
    assert response.kpis.spend_change == 0
    assert response.kpis.roas == 4.0
    assert [p.date for p in response.sales_chart_data] == ["2024-05-01", "2024-05-02"]
    assert response.ppc_chart_data[1].spend == 50.0


def test_metrics_response_single_day_has_no_change():
    response = build_metrics_response([metric(1, "100.00", 10, "0")])

    assert response.kpis.sales_change == 0
    assert response.kpis.roas == 0


def test_metrics_response_empty():
    assert build_metrics_response([]) is None


def test_orders_response_totals_and_chart():
    orders = [
        {"OrderTotal": {"Amount": "19.99"}, "PurchaseDate": "2024-05-30T10:00:00Z"},
        {"OrderTotal": {"Amount": "5.01"}, "PurchaseDate": "2024-05-30T18:00:00Z"},
        {"PurchaseDate": "2024-05-29T09:00:00Z"},
    ]

    response = build_orders_response(orders, days=7, today=date(2024, 5, 31))

    assert response.source == "live"
    assert response.kpis.total_sales == 25.0
    assert response.kpis.total_orders == 3
    assert len(response.sales_chart_data) == 7
    assert response.sales_chart_data[0].date == "2024-05-25"
    assert response.sales_chart_data[-1].date == "2024-05-31"
    by_date = {p.date: p.sales for p in response.sales_chart_data}
    assert by_date["2024-05-30"] == 25.0
    assert by_date["2024-05-29"] == 0
    assert all(p.spend == 0 for p in response.ppc_chart_data)
    assert response.alerts == []


def test_orders_response_warns_when_empty():
    response = build_orders_response([], days=30, today=date(2024, 5, 31))

    assert response.kpis.total_orders == 0
    assert len(response.alerts) == 1
    assert response.alerts[0].type == "warning"
    assert response.alerts[0].title == "No Orders Found"


def test_inventory_summary_ignores_unknown_days_on_hand():
    items = [
        InventoryItem(sku="A", product_name="A", soh=10, doh=4, restock_qty=5),
        InventoryItem(sku="B", product_name="B", soh=20, doh=None, restock_qty=None),
        InventoryItem(sku="C", product_name="C", soh=0, doh=8, restock_qty=0),
    ]

    summary = summarize_inventory(items)

    assert summary.total_soh == 30
    assert summary.avg_doh == 6.0
    assert summary.items_to_restock == 1


def test_inventory_summary_empty():
    summary = summarize_inventory([])

    assert summary.total_soh == 0
    assert summary.avg_doh == 0.0


@pytest.mark.asyncio
async def test_not_connected_without_metrics_raises(storage, account, settings):
    service = DashboardService(storage, settings=settings)

    with pytest.raises(AmazonNotConnectedError):
        await service.get_dashboard(account.id, "US")


@pytest.mark.asyncio
async def test_not_connected_serves_stored_metrics(storage, db_session, account, settings):
    db_session.add(
        DashboardMetric(
            account_id=account.id,
            marketplace="US",
            date=datetime(2024, 5, 1, tzinfo=timezone.utc),
            total_sales=Decimal("10"),
            total_orders=1,
            ppc_spend=Decimal("0"),
        )
    )
    await storage.commit()

    response = await DashboardService(storage, settings=settings).get_dashboard(account.id, "US")

    assert response.source == "persisted"
    assert response.kpis.total_sales == 10.0


@pytest.mark.asyncio
async def test_live_dashboard_from_orders(storage, credential, settings, fake_amazon):
    today = datetime.now(timezone.utc).date().isoformat()
    fake_amazon.respond(fake_amazon.CATALOG, json={"items": []})
    fake_amazon.respond(
        fake_amazon.ORDERS,
        json={"payload": {"Orders": [{"OrderTotal": {"Amount": "12.50"}, "PurchaseDate": f"{today}T01:00:00Z"}]}},
    )
    fake_amazon.respond(fake_amazon.REPORTS, status_code=403, json={"errors": []})
    service = DashboardService(storage, settings=settings, transport=fake_amazon.transport)

    response = await service.get_dashboard(credential.account_id, "US")

    assert response.source == "live"
    assert response.kpis.total_orders == 1
    assert response.kpis.total_sales == 12.5
    assert response.sales_chart_data[-1].sales == 12.5
    assert fake_amazon.token_calls == 1


@pytest.mark.asyncio
async def test_token_failure_falls_back_to_stored_metrics(
    storage, db_session, credential, settings, fake_amazon
):
    db_session.add(
        DashboardMetric(
            account_id=credential.account_id,
            marketplace="US",
            date=datetime(2024, 5, 1, tzinfo=timezone.utc),
            total_sales=Decimal("99"),
            total_orders=3,
            ppc_spend=Decimal("0"),
        )
    )
    await storage.commit()
    fake_amazon.token_status = 400
    service = DashboardService(storage, settings=settings, transport=fake_amazon.transport)

    response = await service.get_dashboard(credential.account_id, "US")

    assert response.source == "persisted"
    assert response.kpis.total_sales == 99.0


@pytest.mark.asyncio
async def test_live_listings_transform(storage, credential, settings, fake_amazon):
    fake_amazon.respond(
        fake_amazon.CATALOG,
        json={"items": [{"asin": "B1", "summaries": [{"itemName": "Widget"}]}, {"sku": "orphan"}]},
    )
    service = DashboardService(storage, settings=settings, transport=fake_amazon.transport)

    listings = await service.get_live_listings(credential.account_id, "US")

    assert len(listings) == 1
    assert listings[0].id == "B1"
    assert listings[0].title == "Widget"
    assert listings[0].marketplace == "US"


@pytest.mark.asyncio
async def test_live_inventory_transform(storage, credential, settings, fake_amazon):
    fake_amazon.respond(
        fake_amazon.INVENTORY,
        json={"payload": {"inventorySummaries": [{"fnSku": "X1", "totalQuantity": 3}]}},
    )
    service = DashboardService(storage, settings=settings, transport=fake_amazon.transport)

    inventory = await service.get_live_inventory(credential.account_id, "US")

    assert inventory[0].sku == "X1"
    assert inventory[0].soh == 3
    assert inventory[0].product_name == "Unknown Product"
    assert inventory[0].doh is None
