"""
Module: inventory_kernel.models.lot
Responsibility: ORM persistence for perishable lots.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Natural key (tenant, product, location, lot_no) is unique.
    - Rows are never deleted and the natural key never changes.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Date, DateTime, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import UUIDBase, UUIDString
from inventory_kernel.db.types import JsonDocument


class Lot(UUIDBase):
    """
    Identity of one batch of a product at one location.

    Contract:
        Created only through LotRegistry.find_or_create(), which is safe
        under concurrent callers presenting the same lot number.
    """

    __tablename__ = "lots"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "product_id", "location_id", "lot_no",
            name="uq_lots_natural_key",
        ),
        # FEFO pick
        Index("idx_lots_expiry", "tenant_id", "product_id", "location_id", "expiry_date"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    lot_no: Mapped[str] = mapped_column(String(100), nullable=False)

    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    manufacture_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    received_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JsonDocument, nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Lot {self.lot_no} product={self.product_id} expiry={self.expiry_date}>"
