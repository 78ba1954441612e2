"""
Module: inventory_modules.production.orm
Responsibility: SQLAlchemy persistence for production orders and their
    ingredient lines.
Architecture position: Modules > Production > ORM.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDBase, UUIDString
from inventory_modules._documents import DocumentHeaderMixin


class ProductionOrderModel(DocumentHeaderMixin, TrackedBase):
    __tablename__ = "production_orders"

    __table_args__ = (
        Index("idx_production_orders_status", "tenant_id", "status"),
    )

    output_product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    output_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    output_lot_no: Mapped[str | None] = mapped_column(String(100), nullable=True)
    output_expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # Filled in at posting
    output_lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("lots.id"), nullable=True,
    )
    output_unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    ingredients: Mapped[list[ProductionIngredientModel]] = relationship(
        back_populates="production_order",
        cascade="all, delete-orphan",
        order_by="ProductionIngredientModel.line_no",
    )


class ProductionIngredientModel(UUIDBase):
    __tablename__ = "production_ingredients"

    production_order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("production_orders.id"), nullable=False, index=True,
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("lots.id"), nullable=True,
    )
    cost_amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    production_order: Mapped[ProductionOrderModel] = relationship(
        back_populates="ingredients",
    )
