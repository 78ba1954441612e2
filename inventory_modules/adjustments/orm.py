"""
Module: inventory_modules.adjustments.orm
Responsibility: SQLAlchemy persistence for stock adjustments and waste.
Architecture position: Modules > Adjustments > ORM.  ``reason`` is stored
    as the AdjustmentReason value (String(32)).
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDBase, UUIDString
from inventory_modules._documents import DocumentHeaderMixin


class AdjustmentModel(DocumentHeaderMixin, TrackedBase):
    __tablename__ = "adjustments"

    __table_args__ = (
        Index("idx_adjustments_status", "tenant_id", "status"),
        Index("idx_adjustments_reason", "tenant_id", "reason"),
    )

    reason: Mapped[str] = mapped_column(String(32), nullable=False)

    lines: Mapped[list[AdjustmentLineModel]] = relationship(
        back_populates="adjustment",
        cascade="all, delete-orphan",
        order_by="AdjustmentLineModel.line_no",
    )


class AdjustmentLineModel(UUIDBase):
    __tablename__ = "adjustment_lines"

    adjustment_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("adjustments.id"), nullable=False, index=True,
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("lots.id"), nullable=True,
    )
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    adjustment: Mapped[AdjustmentModel] = relationship(back_populates="lines")
