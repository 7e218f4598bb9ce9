"""Initial database schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _account_fk() -> sa.Column:
    return sa.Column(
        "account_id",
        sa.String(length=36),
        sa.ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    # Create accounts table
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_id", sa.String(length=255), nullable=False),
        sa.Column("brand_name", sa.String(length=255), nullable=False),
        sa.Column("seller_id", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="active"),
        sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default="false"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_accounts_owner_id", "accounts", ["owner_id"])

    # Create marketplace_connections table
    op.create_table(
        "marketplace_connections",
        sa.Column("id", sa.String(length=36), nullable=False),
        _account_fk(),
        sa.Column("marketplace", sa.String(length=10), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_marketplace_connections_account_id", "marketplace_connections", ["account_id"]
    )

    # Create amazon_credentials table (one row per account)
    op.create_table(
        "amazon_credentials",
        sa.Column("id", sa.String(length=36), nullable=False),
        _account_fk(),
        sa.Column("lwa_client_id", sa.String(length=255), nullable=False),
        sa.Column("lwa_client_secret", sa.String(length=255), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=False),
        sa.Column("region", sa.String(length=20), nullable=False),
        sa.Column("seller_id", sa.String(length=255), nullable=True),
        sa.Column("marketplace_ids", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id"),
    )

    # Create listings table
    op.create_table(
        "listings",
        sa.Column("id", sa.String(length=36), nullable=False),
        _account_fk(),
        sa.Column("marketplace", sa.String(length=10), nullable=False),
        sa.Column("asin", sa.String(length=20), nullable=False),
        sa.Column("sku", sa.String(length=255), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("stock", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="active"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "marketplace", "asin", name="uq_listing_asin"),
    )
    op.create_index("ix_listings_account_id", "listings", ["account_id"])

    # Create inventory table
    op.create_table(
        "inventory",
        sa.Column("id", sa.String(length=36), nullable=False),
        _account_fk(),
        sa.Column("marketplace", sa.String(length=10), nullable=False),
        sa.Column("sku", sa.String(length=255), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("soh", sa.Integer(), nullable=False),
        sa.Column("doh", sa.Integer(), nullable=True),
        sa.Column("restock_qty", sa.Integer(), nullable=True),
        sa.Column("category", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "marketplace", "sku", name="uq_inventory_sku"),
    )
    op.create_index("ix_inventory_account_id", "inventory", ["account_id"])

    # Create dashboard_metrics table
    op.create_table(
        "dashboard_metrics",
        sa.Column("id", sa.String(length=36), nullable=False),
        _account_fk(),
        sa.Column("marketplace", sa.String(length=10), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_sales", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_orders", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ppc_spend", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("roas", sa.Numeric(5, 2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_dashboard_metrics_account_id", "dashboard_metrics", ["account_id"])


def downgrade() -> None:
    op.drop_table("dashboard_metrics")
    op.drop_table("inventory")
    op.drop_table("listings")
    op.drop_table("amazon_credentials")
    op.drop_table("marketplace_connections")
    op.drop_table("accounts")
