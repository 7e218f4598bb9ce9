"""Dashboard, listing and inventory schemas."""

from typing import Literal, Optional

from pydantic import BaseModel


class KPIs(BaseModel):
    """Headline figures with percentage change versus the previous period."""

    total_sales: float = 0
    total_orders: int = 0
    ppc_spend: float = 0
    roas: float = 0
    sales_change: int = 0
    orders_change: int = 0
    spend_change: int = 0
    roas_change: int = 0


class SalesPoint(BaseModel):
    date: str
    sales: float


class PPCPoint(BaseModel):
    date: str
    spend: float
    sales: float


class Alert(BaseModel):
    id: str
    type: Literal["info", "warning", "error"]
    title: str
    message: str


class DashboardResponse(BaseModel):
    """Dashboard payload.

    ``source`` is ``live`` when computed from SP-API orders and
    ``persisted`` when served from stored daily metrics.
    """

    kpis: KPIs
    sales_chart_data: list[SalesPoint]
    ppc_chart_data: list[PPCPoint]
    top_asins: list[dict] = []
    alerts: list[Alert] = []
    source: Literal["live", "persisted"] = "live"


class ListingResponse(BaseModel):
    """Catalog listing."""

    id: str
    account_id: str
    marketplace: str
    asin: str
    sku: Optional[str]
    title: str
    price: Optional[float] = None
    status: str = "active"
    stock: Optional[int] = None
    category: Optional[str] = None
    image_url: Optional[str] = None


class InventoryResponse(BaseModel):
    """FBA inventory position."""

    id: str
    account_id: str
    marketplace: str
    product_name: str
    sku: str
    soh: int
    doh: Optional[int] = None
    category: Optional[str] = None
    restock_qty: Optional[int] = None


class InventorySummary(BaseModel):
    """Totals over persisted inventory."""

    total_soh: int
    avg_doh: float
    items_to_restock: int
