"""
Module: inventory_kernel.models.stock_ledger
Responsibility: ORM persistence for stock ledger entries, the append-only
    record of every change in on-hand quantity.
Architecture position: Kernel > Models.  May import from db/ and
    domain/movement.py only.

Invariants enforced:
    - Conservation: the signed sum of qty_delta_base over a
      (tenant, product, location[, lot]) key is that key's on-hand balance.
    - Provenance: ref_type and ref_id are NOT NULL.
    - Append-only: no UPDATE, no DELETE (db/immutability.py listeners and
      db/sql/01_stock_ledger.sql triggers).
    - An entry is compensated at most once: reversal_of_id is unique.

Audit relevance:
    Every quantity on hand is explainable by summing these rows, and every
    row points back to the business document that caused it.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import SerialBase, SerialKey, UUIDString
from inventory_kernel.db.types import JsonDocument
from inventory_kernel.domain.movement import MovementType


class StockLedgerEntry(SerialBase):
    """
    One immutable signed quantity movement.

    Contract:
        Rows are created only by StockLedgerService.record().  The id is a
        monotonic big integer; together with created_at it orders entries
        for audit.

    Guarantees:
        - qty_delta_base is non-zero and its sign agrees with movement_type.
        - unit_cost, when present, is non-negative and already rounded to
          the configured cost precision.

    Non-goals:
        - Does not track cost layers; see models/cost_layer.py.
    """

    __tablename__ = "stock_ledger"

    __table_args__ = (
        # On-hand by key
        Index(
            "idx_stock_ledger_key",
            "tenant_id", "product_id", "location_id", "lot_id",
        ),
        # Provenance lookup for void
        Index("idx_stock_ledger_ref", "tenant_id", "ref_type", "ref_id"),
        # Per key history
        Index("idx_stock_ledger_key_ts", "tenant_id", "product_id", "location_id", "txn_ts"),
        UniqueConstraint("reversal_of_id", name="uq_stock_ledger_reversal_of"),
        CheckConstraint("qty_delta_base <> 0", name="ck_stock_ledger_qty_nonzero"),
        CheckConstraint(
            "unit_cost IS NULL OR unit_cost >= 0",
            name="ck_stock_ledger_unit_cost_nonneg",
        ),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("lots.id"),
        nullable=True,
    )

    movement_type: Mapped[str] = mapped_column(String(16), nullable=False)

    # Signed: positive in, negative out
    qty_delta_base: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    unit_cost: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    ref_type: Mapped[str] = mapped_column(String(32), nullable=False)
    ref_id: Mapped[str] = mapped_column(String(64), nullable=False)

    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JsonDocument, nullable=True,
    )

    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    txn_ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    reversal_of_id: Mapped[int | None] = mapped_column(
        SerialKey,
        ForeignKey("stock_ledger.id"),
        nullable=True,
    )

    @property
    def movement(self) -> MovementType:
        return MovementType(self.movement_type)

    @property
    def is_inbound(self) -> bool:
        return self.qty_delta_base > 0

    def __repr__(self) -> str:
        return (
            f"<StockLedgerEntry {self.id} {self.movement_type} "
            f"{self.qty_delta_base} @ {self.unit_cost} ref={self.ref_type}:{self.ref_id}>"
        )
