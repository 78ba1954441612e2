"""
Module: inventory_modules.stock_counts.orm
Responsibility: SQLAlchemy persistence for stock counts and count lines.
Architecture position: Modules > Stock Counts > ORM.

Invariants enforced:
    - variance_quantity = counted_quantity - system_quantity, recomputed by
      the service whenever the system quantity is snapshotted.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDBase, UUIDString
from inventory_modules._documents import DocumentHeaderMixin


class StockCountModel(DocumentHeaderMixin, TrackedBase):
    __tablename__ = "stock_counts"

    __table_args__ = (
        Index("idx_stock_counts_status", "tenant_id", "status"),
    )

    lines: Mapped[list[StockCountLineModel]] = relationship(
        back_populates="count",
        cascade="all, delete-orphan",
        order_by="StockCountLineModel.line_no",
    )


class StockCountLineModel(UUIDBase):
    __tablename__ = "stock_count_lines"

    count_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("stock_counts.id"), nullable=False, index=True,
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("lots.id"), nullable=True,
    )
    counted_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    system_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    variance_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    count: Mapped[StockCountModel] = relationship(back_populates="lines")
