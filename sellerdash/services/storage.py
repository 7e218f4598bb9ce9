"""Storage collaborator used by the Amazon integration.

Thin async repository over an ``AsyncSession``. Every SQLAlchemy failure is
rolled back and re-raised as ``PersistenceError`` so callers see a single
error type regardless of the driver underneath.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sellerdash.core.logging import redact
from sellerdash.models.account import Account, MarketplaceConnection
from sellerdash.models.amazon_credential import AmazonCredential
from sellerdash.models.catalog import DashboardMetric, InventoryItem, Listing

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when the database rejects a storage operation."""

    def __init__(self, message: str, operation: str, conflict: bool = False):
        self.message = message
        self.operation = operation
        self.conflict = conflict
        super().__init__(message)


def _describe(exc: SQLAlchemyError) -> str:
    # Use the driver error only: SQLAlchemy's own str() embeds bound parameters.
    detail = getattr(exc, "orig", None)
    text = f"{type(exc).__name__}: {detail}" if detail is not None else type(exc).__name__
    return redact(text)


class Storage:
    """Accounts, credentials and synced data for the dashboard."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            message = f"{operation} failed: {_describe(e)}"
            logger.error(message)
            raise PersistenceError(
                message, operation, conflict=isinstance(e, IntegrityError)
            ) from e

    async def commit(self) -> None:
        async with self._guard("commit"):
            await self.db.commit()

    # Accounts

    async def get_account(self, account_id: str) -> Optional[Account]:
        async with self._guard("get account"):
            return await self.db.get(Account, account_id)

    async def get_owned_account(self, account_id: str, owner_id: str) -> Optional[Account]:
        """Get an account only if it belongs to ``owner_id``."""
        account = await self.get_account(account_id)
        if account is None or account.owner_id != owner_id:
            return None
        return account

    async def get_accounts_by_owner(self, owner_id: str) -> list[Account]:
        async with self._guard("list accounts"):
            result = await self.db.execute(
                select(Account)
                .where(Account.owner_id == owner_id)
                .order_by(Account.is_favorite.desc(), Account.brand_name)
            )
            return list(result.scalars().all())

    async def create_account(
        self,
        owner_id: str,
        brand_name: str,
        seller_id: Optional[str] = None,
    ) -> Account:
        async with self._guard("create account"):
            account = Account(
                owner_id=owner_id,
                brand_name=brand_name,
                seller_id=seller_id,
                status="active",
                is_favorite=False,
            )
            self.db.add(account)
            await self.db.commit()
            await self.db.refresh(account)
            return account

    async def create_marketplace_connection(
        self, account_id: str, marketplace: str
    ) -> MarketplaceConnection:
        async with self._guard("create marketplace connection"):
            connection = MarketplaceConnection(
                account_id=account_id,
                marketplace=marketplace,
                is_active=True,
            )
            self.db.add(connection)
            await self.db.commit()
            await self.db.refresh(connection)
            return connection

    async def get_marketplace_connections(self, account_id: str) -> list[MarketplaceConnection]:
        async with self._guard("list marketplace connections"):
            result = await self.db.execute(
                select(MarketplaceConnection)
                .where(MarketplaceConnection.account_id == account_id)
                .order_by(MarketplaceConnection.is_active.desc(), MarketplaceConnection.created_at)
            )
            return list(result.scalars().all())

    # Credentials

    async def get_credentials_by_account(self, account_id: str) -> Optional[AmazonCredential]:
        async with self._guard("get credentials"):
            result = await self.db.execute(
                select(AmazonCredential).where(AmazonCredential.account_id == account_id)
            )
            return result.scalar_one_or_none()

    async def get_credential(self, credential_id: str) -> Optional[AmazonCredential]:
        async with self._guard("get credential"):
            return await self.db.get(AmazonCredential, credential_id)

    async def create_credentials(self, **fields: Any) -> AmazonCredential:
        async with self._guard("create credentials"):
            credential = AmazonCredential(**fields)
            self.db.add(credential)
            await self.db.commit()
            await self.db.refresh(credential)
            return credential

    async def update_credentials(
        self, credential: AmazonCredential, **updates: Any
    ) -> AmazonCredential:
        async with self._guard("update credentials"):
            for key, value in updates.items():
                setattr(credential, key, value)
            await self.db.commit()
            await self.db.refresh(credential)
            return credential

    async def update_last_synced_at(self, account_id: str) -> None:
        credential = await self.get_credentials_by_account(account_id)
        if credential is None:
            return
        async with self._guard("update last synced"):
            credential.last_synced_at = datetime.now(timezone.utc)
            await self.db.commit()

    async def delete_credential(self, credential: AmazonCredential) -> None:
        async with self._guard("delete credential"):
            await self.db.delete(credential)
            await self.db.commit()

    # Synced data

    async def upsert_listing(
        self, account_id: str, marketplace: str, asin: str, **fields: Any
    ) -> Listing:
        """Insert or update a listing keyed by ASIN. Caller commits."""
        async with self._guard("save listing"):
            result = await self.db.execute(
                select(Listing).where(
                    Listing.account_id == account_id,
                    Listing.marketplace == marketplace,
                    Listing.asin == asin,
                )
            )
            listing = result.scalar_one_or_none()
            if listing is None:
                listing = Listing(account_id=account_id, marketplace=marketplace, asin=asin)
                self.db.add(listing)
            for key, value in fields.items():
                setattr(listing, key, value)
            await self.db.flush()
            return listing

    async def upsert_inventory_item(
        self, account_id: str, marketplace: str, sku: str, **fields: Any
    ) -> InventoryItem:
        """Insert or update an inventory row keyed by SKU. Caller commits."""
        async with self._guard("save inventory"):
            result = await self.db.execute(
                select(InventoryItem).where(
                    InventoryItem.account_id == account_id,
                    InventoryItem.marketplace == marketplace,
                    InventoryItem.sku == sku,
                )
            )
            item = result.scalar_one_or_none()
            if item is None:
                item = InventoryItem(account_id=account_id, marketplace=marketplace, sku=sku)
                self.db.add(item)
            for key, value in fields.items():
                setattr(item, key, value)
            await self.db.flush()
            return item

    async def get_listings_by_account(self, account_id: str, marketplace: str) -> list[Listing]:
        async with self._guard("list listings"):
            result = await self.db.execute(
                select(Listing)
                .where(Listing.account_id == account_id, Listing.marketplace == marketplace)
                .order_by(Listing.updated_at.desc())
            )
            return list(result.scalars().all())

    async def get_inventory_by_account(
        self, account_id: str, marketplace: str
    ) -> list[InventoryItem]:
        async with self._guard("list inventory"):
            result = await self.db.execute(
                select(InventoryItem)
                .where(
                    InventoryItem.account_id == account_id,
                    InventoryItem.marketplace == marketplace,
                )
                .order_by(InventoryItem.doh)
            )
            return list(result.scalars().all())

    async def get_dashboard_metrics(
        self, account_id: str, marketplace: str, limit: int = 30
    ) -> list[DashboardMetric]:
        async with self._guard("list dashboard metrics"):
            result = await self.db.execute(
                select(DashboardMetric)
                .where(
                    DashboardMetric.account_id == account_id,
                    DashboardMetric.marketplace == marketplace,
                )
                .order_by(DashboardMetric.date.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
