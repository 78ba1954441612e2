"""
Data transfer objects passed between orchestrators and kernel services.

Architecture position:
    Kernel > Domain.  Pure, zero I/O.  ORM rows never cross a service
    boundary in the inbound direction; callers hand these instead.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from inventory_kernel.domain.movement import MovementType


@dataclass(frozen=True, slots=True)
class TenantContext:
    """Authenticated caller: every kernel operation is scoped to one tenant."""

    tenant_id: UUID
    actor_id: UUID
    correlation_id: str | None = None


@dataclass(frozen=True)
class MovementInput:
    """
    One stock movement requested of the MovementPoster.

    ``quantity`` is signed: positive adds stock, negative removes it.  For
    outbound movements ``unit_cost`` is ignored; the cost comes from FIFO.
    For inbound movements a missing ``unit_cost`` falls back to the key's
    current cost.  ``lot_id=None`` on an outbound movement draws across all
    lots of the product/location.
    """

    product_id: UUID
    location_id: UUID
    movement_type: MovementType
    quantity: Decimal
    ref_type: str
    ref_id: str
    unit_cost: Decimal | None = None
    lot_id: UUID | None = None
    note: str | None = None
    metadata: Mapping[str, Any] | None = None
    txn_ts: datetime | None = None
    allow_negative: bool = False


@dataclass(frozen=True)
class LedgerEntryInput:
    """One row for StockLedgerService.record()."""

    product_id: UUID
    location_id: UUID
    movement_type: MovementType
    quantity: Decimal
    ref_type: str
    ref_id: str
    unit_cost: Decimal | None = None
    lot_id: UUID | None = None
    note: str | None = None
    metadata: Mapping[str, Any] | None = None
    txn_ts: datetime | None = None
    reversal_of_id: int | None = None
    actor_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class CostLayerInput:
    """One layer for CostLayerEngine.create_layers()."""

    product_id: UUID
    location_id: UUID
    quantity: Decimal
    unit_cost: Decimal
    source_type: str
    source_id: str
    ledger_entry_id: int | None = None
    lot_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class LotInput:
    """Natural key plus descriptive attributes of a lot."""

    product_id: UUID
    location_id: UUID
    lot_no: str
    expiry_date: date | None = None
    manufacture_date: date | None = None
    received_date: date | None = None
    notes: str | None = None
    metadata: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class ReversalOptions:
    """
    How compensating entries are stamped.

    ``override_ref_id`` replaces the reference id of every reversal row;
    ``override_type`` replaces the mapped reversal type.
    """

    actor_id: UUID | None = None
    txn_ts: datetime | None = None
    note_prefix: str = "Reversal: "
    override_ref_id: str | None = None
    override_type: MovementType | None = None
    allow_negative: bool = False


@dataclass(frozen=True, slots=True)
class PostedMovement:
    """One persisted ledger entry and the layer effect it had."""

    ledger_entry_id: int
    movement_type: MovementType
    product_id: UUID
    location_id: UUID
    lot_id: UUID | None
    quantity: Decimal
    unit_cost: Decimal | None
    created_layer_id: int | None = None
    consumed_layer_ids: tuple[int, ...] = field(default_factory=tuple)

    @property
    def value(self) -> Decimal:
        if self.unit_cost is None:
            return Decimal("0")
        return self.quantity * self.unit_cost
