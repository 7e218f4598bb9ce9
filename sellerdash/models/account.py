"""Seller account and marketplace connection models."""

from typing import Optional, TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sellerdash.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from sellerdash.models.amazon_credential import AmazonCredential


class Account(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """An Amazon seller account tracked by the dashboard."""

    __tablename__ = "accounts"

    # User id from the identity layer (JWT subject)
    owner_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    brand_name: Mapped[str] = mapped_column(String(255), nullable=False)
    seller_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(50), default="active", nullable=False)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    marketplace_connections: Mapped[list["MarketplaceConnection"]] = relationship(
        "MarketplaceConnection", back_populates="account", cascade="all, delete-orphan"
    )
    credential: Mapped[Optional["AmazonCredential"]] = relationship(
        "AmazonCredential", back_populates="account", uselist=False
    )


class MarketplaceConnection(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A marketplace (US, DE, JP, ...) enabled for an account."""

    __tablename__ = "marketplace_connections"

    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), index=True, nullable=False
    )
    marketplace: Mapped[str] = mapped_column(String(10), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    account: Mapped["Account"] = relationship("Account", back_populates="marketplace_connections")
