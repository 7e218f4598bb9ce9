"""Amazon SP-API credential storage model."""

import json
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sellerdash.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from sellerdash.models.account import Account


class AmazonCredential(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A seller's authorization of the SP-API application.

    One row per account. Access tokens are never stored here, only the
    long-lived refresh token issued by Login with Amazon.
    """

    __tablename__ = "amazon_credentials"

    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    lwa_client_id: Mapped[str] = mapped_column(String(255), nullable=False)
    lwa_client_secret: Mapped[str] = mapped_column(String(255), nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    region: Mapped[str] = mapped_column(String(20), nullable=False)  # NA, EU, FE
    seller_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    marketplace_ids: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON list
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    account: Mapped["Account"] = relationship("Account", back_populates="credential")

    @property
    def marketplace_id_list(self) -> list[str]:
        """Authorized marketplace ids decoded from the JSON column."""
        if not self.marketplace_ids:
            return []
        return list(json.loads(self.marketplace_ids))

    def __repr__(self) -> str:
        return (
            f"AmazonCredential(id={self.id!r}, account_id={self.account_id!r}, "
            f"region={self.region!r}, is_active={self.is_active!r})"
        )
