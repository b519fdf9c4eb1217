from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, and_
from sqlalchemy.orm import Mapped, foreign, mapped_column, relationship

from app.fieldops.constants import LEGACY_BUCKET_RETAIL, LEGACY_BUCKET_WHOLESALE
from app.fieldops.models import Base


class Distributor(Base):
    __tablename__ = "distributors"
    __table_args__ = (
        Index("idx_distributors_name", "name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    shop_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Cached; written only by app.fieldops.modules.shops.reconcile
    retail_shop_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wholesale_shop_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    retail_shops: Mapped[list["LegacyShopEntry"]] = relationship(
        "LegacyShopEntry",
        primaryjoin=lambda: and_(
            Distributor.id == foreign(LegacyShopEntry.distributor_id),
            LegacyShopEntry.bucket == LEGACY_BUCKET_RETAIL,
        ),
        order_by=lambda: LegacyShopEntry.id,
        cascade="all",
        lazy="selectin",
        overlaps="wholesale_shops",
    )
    wholesale_shops: Mapped[list["LegacyShopEntry"]] = relationship(
        "LegacyShopEntry",
        primaryjoin=lambda: and_(
            Distributor.id == foreign(LegacyShopEntry.distributor_id),
            LegacyShopEntry.bucket == LEGACY_BUCKET_WHOLESALE,
        ),
        order_by=lambda: LegacyShopEntry.id,
        cascade="all",
        lazy="selectin",
        overlaps="retail_shops",
    )


class LegacyShopEntry(Base):
    """
    One element of a distributor's legacy retailShops / wholesaleShops list.

    These predate the shops table. The entry carries no shop type; the bucket it
    lives in ("retail" or "wholesale") is the type.
    """

    __tablename__ = "distributor_legacy_shops"
    __table_args__ = (
        Index("idx_distributor_legacy_shops_distributor_bucket", "distributor_id", "bucket"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    distributor_id: Mapped[int] = mapped_column(ForeignKey("distributors.id", ondelete="CASCADE"), nullable=False)
    bucket: Mapped[str] = mapped_column(String(16), nullable=False)

    shop_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    owner_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
