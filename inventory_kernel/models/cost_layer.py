"""
Module: inventory_kernel.models.cost_layer
Responsibility: ORM persistence for FIFO cost layers and the audit trail of
    their consumption.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - FIFO order: (tenant, product, location, lot, created_at) index; ties
      broken by id.
    - unit_cost and qty_received_base never change after insert.
    - qty_remaining_base only decreases and never drops below zero, except
      deficit layers, which are born negative and never change.
    - Layers are never deleted; exhausted layers are inert.
    - Consumption rows are append-only.

Audit relevance:
    sum(qty_remaining_base) per key equals the ledger on-hand of that key.
    cost_layer_consumptions explains, per outbound ledger entry, which
    receipts supplied the goods and at what cost.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import SerialBase, SerialKey, UUIDString


class CostLayer(SerialBase):
    """
    A receipt-time cost bucket.

    Contract:
        Created for every inbound movement (one layer per inbound ledger
        entry) and drawn down by outbound movements in FIFO order.  Layers
        are never merged.

    Guarantees:
        - ledger_entry_id links the inbound entry that created the layer.
        - source_type/source_id carry the business reference.

    Non-goals:
        - No weighted-average blending.  Each layer keeps its own cost.
    """

    __tablename__ = "cost_layers"

    __table_args__ = (
        # FIFO scan per key
        Index(
            "idx_cost_layers_fifo",
            "tenant_id", "product_id", "location_id", "lot_id", "created_at",
        ),
        Index("idx_cost_layers_ledger_entry", "ledger_entry_id"),
        CheckConstraint("unit_cost >= 0", name="ck_cost_layers_unit_cost_nonneg"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("lots.id"),
        nullable=True,
    )

    qty_received_base: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Decreases only; negative only for deficit layers
    qty_remaining_base: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    unit_cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    source_type: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str] = mapped_column(String(64), nullable=False)

    ledger_entry_id: Mapped[int | None] = mapped_column(
        SerialKey,
        ForeignKey("stock_ledger.id"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    @property
    def is_deficit(self) -> bool:
        return self.qty_remaining_base < 0

    @property
    def remaining_value(self) -> Decimal:
        return self.qty_remaining_base * self.unit_cost

    def __repr__(self) -> str:
        return (
            f"<CostLayer {self.id} {self.qty_remaining_base}/{self.qty_received_base} "
            f"@ {self.unit_cost}>"
        )


class CostLayerConsumption(SerialBase):
    """
    One draw of an outbound ledger entry on one cost layer.

    Guarantees:
        - amount == qty_out_base * unit_cost (exact, unrounded).
        - Append-only.
    """

    __tablename__ = "cost_layer_consumptions"

    __table_args__ = (
        Index("idx_layer_consumptions_layer", "layer_id"),
        Index("idx_layer_consumptions_entry", "ledger_entry_id"),
        Index("idx_layer_consumptions_ref", "tenant_id", "ref_type", "ref_id"),
        CheckConstraint("qty_out_base > 0", name="ck_layer_consumptions_qty_pos"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    layer_id: Mapped[int] = mapped_column(
        SerialKey,
        ForeignKey("cost_layers.id"),
        nullable=False,
    )
    ledger_entry_id: Mapped[int] = mapped_column(
        SerialKey,
        ForeignKey("stock_ledger.id"),
        nullable=False,
    )

    ref_type: Mapped[str] = mapped_column(String(32), nullable=False)
    ref_id: Mapped[str] = mapped_column(String(64), nullable=False)

    qty_out_base: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
