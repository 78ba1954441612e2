"""
Module: inventory_modules.goods_receipts.orm
Responsibility: SQLAlchemy persistence for goods receipts and their lines.

Architecture position: Modules > Goods Receipts > ORM.  Header inherits
    TrackedBase plus DocumentHeaderMixin.  Products are external entities
    referenced by UUID with no foreign key.

Invariants enforced:
    - Quantities and costs are Numeric(38, 9).
    - Lines belong to exactly one receipt (FK, cascade on the ORM side).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDBase, UUIDString
from inventory_modules._documents import DocumentHeaderMixin


class GoodsReceiptModel(DocumentHeaderMixin, TrackedBase):
    """Receipt of purchased goods into one location."""

    __tablename__ = "goods_receipts"

    __table_args__ = (
        Index("idx_goods_receipts_status", "tenant_id", "status"),
    )

    supplier_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    received_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    lines: Mapped[list[GoodsReceiptLineModel]] = relationship(
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="GoodsReceiptLineModel.line_no",
    )

    def __repr__(self) -> str:
        return f"<GoodsReceipt {self.id} status={self.status} lines={len(self.lines)}>"


class GoodsReceiptLineModel(UUIDBase):
    __tablename__ = "goods_receipt_lines"

    receipt_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("goods_receipts.id"), nullable=False, index=True,
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)

    lot_no: Mapped[str | None] = mapped_column(String(100), nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    manufacture_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # Resolved at posting
    lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("lots.id"), nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    receipt: Mapped[GoodsReceiptModel] = relationship(back_populates="lines")
