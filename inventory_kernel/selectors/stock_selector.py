"""
Module: inventory_kernel.selectors.stock_selector
Responsibility: Read-only stock queries: on-hand quantities, lot balances,
    FEFO candidates, remaining layer quantities and value, ledger/layer
    reconciliation, and the ledger and consumption views of a reference.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.

Invariants enforced:
    - No stored balances.  On-hand is always the sum of ledger deltas.
    - Conservation check: reconcile() compares the ledger on-hand with the
      sum of layer remainders, per key and per lot.

Failure modes:
    - Unknown keys yield zero balances and empty lists, never errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.db.types import ZERO, from_db_number
from inventory_kernel.models.cost_layer import CostLayer, CostLayerConsumption
from inventory_kernel.models.lot import Lot
from inventory_kernel.models.stock_ledger import StockLedgerEntry
from inventory_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LotBalance:
    """On-hand of one lot."""

    lot_id: UUID
    lot_no: str
    expiry_date: date | None
    quantity: Decimal


@dataclass(frozen=True)
class LedgerEntryView:
    """A stock ledger row, detached from the session."""

    entry_id: int
    movement_type: str
    product_id: UUID
    location_id: UUID
    lot_id: UUID | None
    quantity: Decimal
    unit_cost: Decimal | None
    ref_type: str
    ref_id: str
    note: str | None
    txn_ts: datetime
    reversal_of_id: int | None

    @property
    def value(self) -> Decimal:
        if self.unit_cost is None:
            return ZERO
        return self.quantity * self.unit_cost


@dataclass(frozen=True)
class ConsumptionView:
    """One layer draw behind an outbound ledger entry."""

    layer_id: int
    ledger_entry_id: int
    quantity: Decimal
    unit_cost: Decimal
    amount: Decimal
    layer_source_type: str
    layer_source_id: str
    layer_lot_id: UUID | None


@dataclass(frozen=True)
class LotReconciliation:
    lot_id: UUID | None
    ledger_quantity: Decimal
    layer_quantity: Decimal

    @property
    def difference(self) -> Decimal:
        return self.ledger_quantity - self.layer_quantity


@dataclass(frozen=True)
class ReconciliationResult:
    """Ledger on-hand against layer remainders for one product/location."""

    product_id: UUID
    location_id: UUID
    ledger_quantity: Decimal
    layer_quantity: Decimal
    lots: tuple[LotReconciliation, ...]

    @property
    def difference(self) -> Decimal:
        return self.ledger_quantity - self.layer_quantity

    @property
    def is_balanced(self) -> bool:
        return self.difference == 0 and all(lot.difference == 0 for lot in self.lots)


class StockSelector(BaseSelector[StockLedgerEntry]):
    """
    Selector for stock balances -- derived views over the ledger and layers.

    Guarantees:
        - All quantities and values are Decimal.
        - Every query is tenant scoped.
    """

    def _ledger_key(self, product_id: UUID, location_id: UUID) -> list:
        return [
            StockLedgerEntry.tenant_id == self.tenant_id,
            StockLedgerEntry.product_id == product_id,
            StockLedgerEntry.location_id == location_id,
        ]

    def _layer_key(self, product_id: UUID, location_id: UUID) -> list:
        return [
            CostLayer.tenant_id == self.tenant_id,
            CostLayer.product_id == product_id,
            CostLayer.location_id == location_id,
        ]

    def on_hand(self, product_id: UUID, location_id: UUID) -> Decimal:
        """Sum of ledger deltas for the product at the location, all lots."""
        return self.sum_decimal(
            StockLedgerEntry.qty_delta_base, *self._ledger_key(product_id, location_id),
        )

    def lot_on_hand(self, lot_id: UUID) -> Decimal:
        return self.sum_decimal(
            StockLedgerEntry.qty_delta_base,
            StockLedgerEntry.tenant_id == self.tenant_id,
            StockLedgerEntry.lot_id == lot_id,
        )

    def lot_balances(self, product_id: UUID, location_id: UUID) -> list[LotBalance]:
        """Every lot of the key with its on-hand, including empty lots."""
        totals = self.sum_decimal_by(
            StockLedgerEntry.lot_id,
            StockLedgerEntry.qty_delta_base,
            *self._ledger_key(product_id, location_id),
            StockLedgerEntry.lot_id.is_not(None),
        )
        lots = self.session.scalars(
            select(Lot)
            .where(
                Lot.tenant_id == self.tenant_id,
                Lot.product_id == product_id,
                Lot.location_id == location_id,
            )
            .order_by(Lot.lot_no)
        )
        return [
            LotBalance(
                lot_id=lot.id,
                lot_no=lot.lot_no,
                expiry_date=lot.expiry_date,
                quantity=totals.get(lot.id, ZERO),
            )
            for lot in lots
        ]

    def fefo_candidates(self, product_id: UUID, location_id: UUID) -> list[LotBalance]:
        """Lots with stock, earliest expiry first; lots without expiry last."""
        candidates = [b for b in self.lot_balances(product_id, location_id) if b.quantity > 0]
        return sorted(
            candidates,
            key=lambda b: (b.expiry_date is None, b.expiry_date or date.max, b.lot_no),
        )

    def layer_remaining(
        self, product_id: UUID, location_id: UUID, lot_id: UUID | None = None,
    ) -> Decimal:
        criteria = self._layer_key(product_id, location_id)
        if lot_id is not None:
            criteria.append(CostLayer.lot_id == lot_id)
        return self.sum_decimal(CostLayer.qty_remaining_base, *criteria)

    def inventory_value(
        self, product_id: UUID | None = None, location_id: UUID | None = None,
    ) -> Decimal:
        """Remaining quantity times layer cost, deficit layers included."""
        criteria = [CostLayer.tenant_id == self.tenant_id, CostLayer.qty_remaining_base != 0]
        if product_id is not None:
            criteria.append(CostLayer.product_id == product_id)
        if location_id is not None:
            criteria.append(CostLayer.location_id == location_id)
        rows = self.session.execute(
            select(CostLayer.qty_remaining_base, CostLayer.unit_cost).where(*criteria)
        )
        return sum(
            (from_db_number(qty) * from_db_number(cost) for qty, cost in rows), ZERO,
        )

    def reconcile(self, product_id: UUID, location_id: UUID) -> ReconciliationResult:
        ledger_by_lot = self.sum_decimal_by(
            StockLedgerEntry.lot_id,
            StockLedgerEntry.qty_delta_base,
            *self._ledger_key(product_id, location_id),
        )
        layers_by_lot = self.sum_decimal_by(
            CostLayer.lot_id,
            CostLayer.qty_remaining_base,
            *self._layer_key(product_id, location_id),
        )
        lot_ids = sorted(set(ledger_by_lot) | set(layers_by_lot), key=lambda v: str(v or ""))
        lots = tuple(
            LotReconciliation(
                lot_id=lot_id,
                ledger_quantity=ledger_by_lot.get(lot_id, ZERO),
                layer_quantity=layers_by_lot.get(lot_id, ZERO),
            )
            for lot_id in lot_ids
        )
        return ReconciliationResult(
            product_id=product_id,
            location_id=location_id,
            ledger_quantity=sum(ledger_by_lot.values(), ZERO),
            layer_quantity=sum(layers_by_lot.values(), ZERO),
            lots=lots,
        )

    def entries_for_reference(self, ref_type: str, ref_id: str) -> list[LedgerEntryView]:
        """Ledger rows of a reference, reversals included, in insertion order."""
        rows = self.session.scalars(
            select(StockLedgerEntry)
            .where(
                StockLedgerEntry.tenant_id == self.tenant_id,
                StockLedgerEntry.ref_type == ref_type,
                StockLedgerEntry.ref_id == ref_id,
            )
            .order_by(StockLedgerEntry.id)
        )
        return [
            LedgerEntryView(
                entry_id=row.id,
                movement_type=row.movement_type,
                product_id=row.product_id,
                location_id=row.location_id,
                lot_id=row.lot_id,
                quantity=from_db_number(row.qty_delta_base),
                unit_cost=(
                    from_db_number(row.unit_cost) if row.unit_cost is not None else None
                ),
                ref_type=row.ref_type,
                ref_id=row.ref_id,
                note=row.note,
                txn_ts=row.txn_ts,
                reversal_of_id=row.reversal_of_id,
            )
            for row in rows
        ]

    def consumption_trail(self, ledger_entry_id: int) -> list[ConsumptionView]:
        """Layers drawn by one outbound entry, in draw order."""
        rows = self.session.execute(
            select(CostLayerConsumption, CostLayer)
            .join(CostLayer, CostLayer.id == CostLayerConsumption.layer_id)
            .where(
                CostLayerConsumption.tenant_id == self.tenant_id,
                CostLayerConsumption.ledger_entry_id == ledger_entry_id,
            )
            .order_by(CostLayerConsumption.id)
        )
        return [
            ConsumptionView(
                layer_id=consumption.layer_id,
                ledger_entry_id=consumption.ledger_entry_id,
                quantity=from_db_number(consumption.qty_out_base),
                unit_cost=from_db_number(consumption.unit_cost),
                amount=from_db_number(consumption.amount),
                layer_source_type=layer.source_type,
                layer_source_id=layer.source_id,
                layer_lot_id=layer.lot_id,
            )
            for consumption, layer in rows
        ]
