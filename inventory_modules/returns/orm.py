"""
Module: inventory_modules.returns.orm
Responsibility: SQLAlchemy persistence for return orders and their lines.
Architecture position: Modules > Returns > ORM.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDBase, UUIDString
from inventory_modules._documents import DocumentHeaderMixin


class ReturnOrderModel(DocumentHeaderMixin, TrackedBase):
    """Goods coming back from a customer or going back to a supplier."""

    __tablename__ = "return_orders"

    __table_args__ = (
        Index("idx_return_orders_status", "tenant_id", "status"),
    )

    return_type: Mapped[str] = mapped_column(String(16), nullable=False)
    # customer or supplier reference, depending on return_type
    partner_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)

    lines: Mapped[list[ReturnOrderLineModel]] = relationship(
        back_populates="return_order",
        cascade="all, delete-orphan",
        order_by="ReturnOrderLineModel.line_no",
    )


class ReturnOrderLineModel(UUIDBase):
    __tablename__ = "return_order_lines"

    return_order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("return_orders.id"), nullable=False, index=True,
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("lots.id"), nullable=True,
    )
    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    # value moved by the line, filled in at posting
    cost_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    return_order: Mapped[ReturnOrderModel] = relationship(back_populates="lines")
