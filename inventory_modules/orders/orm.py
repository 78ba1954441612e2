"""
Module: inventory_modules.orders.orm
Responsibility: SQLAlchemy persistence for customer orders and their lines.
Architecture position: Modules > Orders > ORM.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDBase, UUIDString
from inventory_modules._documents import DocumentHeaderMixin


class OrderModel(DocumentHeaderMixin, TrackedBase):
    """Goods leaving a location for a customer."""

    __tablename__ = "orders"

    __table_args__ = (
        Index("idx_orders_status", "tenant_id", "status"),
    )

    customer_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)

    lines: Mapped[list[OrderLineModel]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLineModel.line_no",
    )


class OrderLineModel(UUIDBase):
    __tablename__ = "order_lines"

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("orders.id"), nullable=False, index=True,
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("lots.id"), nullable=True,
    )
    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    # FIFO cost of goods, filled in at posting
    cost_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    order: Mapped[OrderModel] = relationship(back_populates="lines")
