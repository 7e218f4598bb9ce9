"""Listing, inventory and dashboard metric models populated by sync."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sellerdash.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Listing(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Catalog listing persisted from the SP-API catalog items endpoint."""

    __tablename__ = "listings"
    __table_args__ = (
        UniqueConstraint("account_id", "marketplace", "asin", name="uq_listing_asin"),
    )

    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), index=True, nullable=False
    )
    marketplace: Mapped[str] = mapped_column(String(10), nullable=False)
    asin: Mapped[str] = mapped_column(String(20), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    stock: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # active, inactive, suppressed, missing_info
    status: Mapped[str] = mapped_column(String(50), default="active", nullable=False)


class InventoryItem(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """FBA inventory position for one SKU."""

    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("account_id", "marketplace", "sku", name="uq_inventory_sku"),
    )

    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), index=True, nullable=False
    )
    marketplace: Mapped[str] = mapped_column(String(10), nullable=False)
    sku: Mapped[str] = mapped_column(String(255), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    soh: Mapped[int] = mapped_column(Integer, nullable=False)  # stock on hand
    doh: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # days on hand
    restock_qty: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class DashboardMetric(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Daily aggregated sales/PPC figures for an account marketplace."""

    __tablename__ = "dashboard_metrics"

    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), index=True, nullable=False
    )
    marketplace: Mapped[str] = mapped_column(String(10), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    total_orders: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ppc_spend: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    roas: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
