"""
MovementPoster -- the single "post movement" operation.

Responsibility:
    Turns a batch of requested stock movements into ledger entries and their
    cost-layer effects inside the caller's transaction:

        outbound movements -> FIFO draw (locks) -> one ledger row per lot drawn
        all movements      -> StockLedgerService.record (one batch)
        inbound rows       -> one new cost layer each
        outbound rows      -> consumption trail (+ deficit layer if allowed)

    Orchestrators never call the ledger or the layer engine directly, so a
    ledger row without its layer effect (or the reverse) cannot be produced.

Architecture position:
    Kernel > Services.  Composes StockLedgerService, CostLayerEngine and
    LotRegistry.

Invariants enforced:
    - Conservation per (product, location, lot): every ledger row's quantity
      is matched by exactly the same change in that key's layer remainders.
    - Outbound ledger unit cost = exact FIFO weighted average of the layers
      drawn for that row, rounded once at persist.
    - Outbound draws are performed in (product, location, lot) order so that
      concurrent multi-line postings lock layers in a consistent order.
    - A supplied lot id must belong to the movement's product and location.

Failure modes:
    - ValidationError, InsufficientStockError, NegativeStockPolicyError,
      LotNotFoundError, ConcurrencyConflictError.  Nothing is committed here;
      the caller rolls back.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_engines.costing import LayerTake, group_takes_by_lot, weighted_average_cost
from inventory_kernel.db.types import ZERO, exceeds_precision, to_decimal
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import (
    CostLayerInput,
    LedgerEntryInput,
    MovementInput,
    PostedMovement,
    TenantContext,
)
from inventory_kernel.domain.movement import MovementType
from inventory_kernel.domain.settings import KernelSettings
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.stock_ledger import StockLedgerEntry
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.cost_layer_engine import CostLayerEngine, FifoConsumption
from inventory_kernel.services.lot_registry import LotRegistry
from inventory_kernel.services.stock_ledger import StockLedgerService

logger = get_logger("services.movement_poster")

# Inbound types whose cost must be stated by the caller.
_COST_REQUIRED = frozenset({
    MovementType.RECEIPT,
    MovementType.TRANSFER_IN,
    MovementType.PRODUCTION_IN,
})


@dataclass
class _Effect:
    """Layer effect still to apply once the ledger row exists."""

    inbound: bool
    takes: tuple[LayerTake, ...] = ()
    shortfall: Decimal = ZERO
    shortfall_unit_cost: Decimal = ZERO


class MovementPoster(BaseService[StockLedgerEntry]):
    """
    Posts movements and reversals.

    Contract:
        ``post_batch`` and ``post_reversal`` flush but never commit.  On any
        exception the session holds partial work and the caller must roll
        back.
    """

    def __init__(
        self,
        session: Session,
        context: TenantContext,
        clock: Clock | None = None,
        settings: KernelSettings | None = None,
    ):
        super().__init__(session, context, clock, settings)
        self.ledger = StockLedgerService(session, context, self.clock, self.settings)
        self.layers = CostLayerEngine(session, context, self.clock, self.settings)
        self.lots = LotRegistry(session, context, self.clock, self.settings)

    # ------------------------------------------------------------------
    # Forward postings
    # ------------------------------------------------------------------

    def post_batch(self, movements: Sequence[MovementInput]) -> list[PostedMovement]:
        if not movements:
            return []

        quantities = [self._validate(m, index) for index, m in enumerate(movements)]
        inbound_costs = {
            index: self._inbound_cost(m, index)
            for index, m in enumerate(movements)
            if quantities[index] > 0
        }

        consumptions: dict[int, FifoConsumption] = {}
        outbound = [i for i, qty in enumerate(quantities) if qty < 0]
        for index in sorted(outbound, key=lambda i: self._lock_order(movements[i])):
            m = movements[index]
            consumptions[index] = self.layers.consume_fifo(
                m.product_id,
                m.location_id,
                m.lot_id,
                -quantities[index],
                allow_negative=m.allow_negative,
            )

        inputs: list[LedgerEntryInput] = []
        effects: list[_Effect] = []
        for index, (m, quantity) in enumerate(zip(movements, quantities)):
            if quantity > 0:
                inputs.append(self._entry(m, quantity, inbound_costs[index], m.lot_id))
                effects.append(_Effect(inbound=True))
                continue
            for lot_id, takes, shortfall in self._split_by_lot(m, consumptions[index]):
                drawn = sum((t.quantity for t in takes), ZERO) + shortfall
                cost = weighted_average_cost(
                    takes, shortfall, consumptions[index].shortfall_unit_cost,
                )
                inputs.append(self._entry(m, -drawn, cost, lot_id))
                effects.append(
                    _Effect(
                        inbound=False,
                        takes=takes,
                        shortfall=shortfall,
                        shortfall_unit_cost=consumptions[index].shortfall_unit_cost,
                    )
                )

        entries = self.ledger.record(inputs)
        posted = self._apply_effects(entries, effects)

        logger.info(
            "movements_posted",
            extra={
                "movement_count": len(movements),
                "entry_count": len(entries),
                "ref_type": movements[0].ref_type,
                "ref_id": movements[0].ref_id,
            },
        )
        return posted

    # ------------------------------------------------------------------
    # Reversals
    # ------------------------------------------------------------------

    def post_reversal(
        self,
        movements: Sequence[LedgerEntryInput],
        *,
        allow_negative: bool = False,
    ) -> list[PostedMovement]:
        """
        Post compensating entries built by build_reversal().

        Positive rows (reversed outbound movements) reinstate a layer at the
        preserved unit cost.  Negative rows (reversed inbound movements) draw
        first from the layer the original entry created, then FIFO.  Negative
        rows are drawn in (product, location, lot) order, as in post_batch.
        """
        if not movements:
            return []

        quantities: list[Decimal] = []
        for index, m in enumerate(movements):
            if m.reversal_of_id is None:
                raise ValidationError(
                    f"reversal {index}: reversal_of_id is required", field="reversal_of_id",
                )
            quantities.append(self._quantity(m.quantity, index))

        consumptions: dict[int, FifoConsumption] = {}
        outbound = [i for i, qty in enumerate(quantities) if qty < 0]
        for index in sorted(outbound, key=lambda i: self._lock_order(movements[i])):
            m = movements[index]
            consumptions[index] = self.layers.consume_for_reversal(
                m.reversal_of_id,
                m.product_id,
                m.location_id,
                m.lot_id,
                -quantities[index],
                allow_negative=allow_negative,
            )

        effects = [
            _Effect(inbound=True)
            if index not in consumptions
            else _Effect(
                inbound=False,
                takes=consumptions[index].takes,
                shortfall=consumptions[index].shortfall,
                shortfall_unit_cost=consumptions[index].shortfall_unit_cost,
            )
            for index in range(len(movements))
        ]

        entries = self.ledger.record(movements)
        posted = self._apply_effects(entries, effects, reinstating=True)

        logger.info(
            "reversal_posted",
            extra={
                "entry_count": len(entries),
                "reversed_entry_ids": [m.reversal_of_id for m in movements],
            },
        )
        return posted

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_effects(
        self,
        entries: Sequence[StockLedgerEntry],
        effects: Sequence[_Effect],
        *,
        reinstating: bool = False,
    ) -> list[PostedMovement]:
        inbound_entries = [e for e, eff in zip(entries, effects) if eff.inbound]
        if reinstating:
            created = [self.layers.reinstate_layer(entry) for entry in inbound_entries]
        else:
            created = self.layers.create_layers([
                CostLayerInput(
                    product_id=entry.product_id,
                    location_id=entry.location_id,
                    lot_id=entry.lot_id,
                    quantity=entry.qty_delta_base,
                    unit_cost=entry.unit_cost if entry.unit_cost is not None else ZERO,
                    source_type=entry.ref_type,
                    source_id=entry.ref_id,
                    ledger_entry_id=entry.id,
                )
                for entry in inbound_entries
            ])
        layer_by_entry = {layer.ledger_entry_id: layer.id for layer in created}

        posted: list[PostedMovement] = []
        for entry, effect in zip(entries, effects):
            consumed: tuple[int, ...] = ()
            if not effect.inbound:
                self.layers.record_consumptions(entry, effect.takes)
                consumed = tuple(t.layer_id for t in effect.takes)
                if effect.shortfall > 0:
                    self.layers.record_deficit(entry, effect.shortfall, effect.shortfall_unit_cost)
            posted.append(
                PostedMovement(
                    ledger_entry_id=entry.id,
                    movement_type=entry.movement,
                    product_id=entry.product_id,
                    location_id=entry.location_id,
                    lot_id=entry.lot_id,
                    quantity=entry.qty_delta_base,
                    unit_cost=entry.unit_cost,
                    created_layer_id=layer_by_entry.get(entry.id),
                    consumed_layer_ids=consumed,
                )
            )
        return posted

    def _validate(self, m: MovementInput, index: int) -> Decimal:
        if not isinstance(m.movement_type, MovementType):
            raise ValidationError(
                f"movement {index}: unknown movement type {m.movement_type!r}",
                field="movement_type",
            )
        if m.movement_type.is_reversal:
            raise ValidationError(
                f"movement {index}: {m.movement_type.value} is only produced by reversals",
                field="movement_type",
            )
        if not m.ref_type or not m.ref_id:
            raise ValidationError(
                f"movement {index}: ref_type and ref_id are required", field="ref_type",
            )
        quantity = self._quantity(m.quantity, index)
        if exceeds_precision(quantity, self.settings.quantity_decimal_places):
            raise ValidationError(
                f"movement {index}: quantity {quantity} exceeds "
                f"{self.settings.quantity_decimal_places} decimal places",
                field="quantity",
            )
        if m.unit_cost is not None:
            self._check_unit_cost(m.unit_cost, index)
        if not m.movement_type.accepts(quantity):
            raise ValidationError(
                f"movement {index}: quantity {quantity} has the wrong sign for "
                f"{m.movement_type.value}",
                field="quantity",
            )
        if quantity > 0 and m.movement_type in _COST_REQUIRED and m.unit_cost is None:
            raise ValidationError(
                f"movement {index}: {m.movement_type.value} requires a unit cost",
                field="unit_cost",
            )
        if m.lot_id is not None:
            self.lots.require_for_key(m.lot_id, m.product_id, m.location_id)
        return quantity

    @staticmethod
    def _check_unit_cost(value: Decimal, index: int) -> None:
        try:
            cost = to_decimal(value, "unit_cost")
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"movement {index}: {exc}", field="unit_cost") from exc
        if cost < 0:
            raise ValidationError(
                f"movement {index}: unit cost must be non-negative", field="unit_cost",
            )

    @staticmethod
    def _quantity(value: Decimal, index: int) -> Decimal:
        try:
            quantity = to_decimal(value, "quantity")
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"movement {index}: {exc}", field="quantity") from exc
        if quantity == 0:
            raise ValidationError(f"movement {index}: quantity must be non-zero", field="quantity")
        return quantity

    def _inbound_cost(self, m: MovementInput, index: int) -> Decimal:
        if m.unit_cost is not None:
            return m.unit_cost
        cost = self.layers.current_unit_cost(m.product_id, m.location_id, m.lot_id)
        if cost is None:
            raise ValidationError(
                f"movement {index}: no unit cost given and no cost history for "
                f"product {m.product_id} at {m.location_id}",
                field="unit_cost",
            )
        return cost

    @staticmethod
    def _lock_order(m: MovementInput | LedgerEntryInput) -> tuple[str, str, str]:
        return (str(m.product_id), str(m.location_id), str(m.lot_id or ""))

    @staticmethod
    def _split_by_lot(
        m: MovementInput, consumption: FifoConsumption,
    ) -> list[tuple[UUID | None, tuple[LayerTake, ...], Decimal]]:
        """One (lot, takes, shortfall) group per lot drawn; shortfall sits on the requested lot."""
        groups = group_takes_by_lot(consumption.takes)
        if consumption.shortfall > 0 and m.lot_id not in groups:
            groups[m.lot_id] = ()
        return [
            (lot_id, takes, consumption.shortfall if lot_id == m.lot_id else ZERO)
            for lot_id, takes in groups.items()
        ]

    def _entry(
        self, m: MovementInput, quantity: Decimal, unit_cost: Decimal | None, lot_id: UUID | None,
    ) -> LedgerEntryInput:
        return LedgerEntryInput(
            product_id=m.product_id,
            location_id=m.location_id,
            movement_type=m.movement_type,
            quantity=quantity,
            ref_type=m.ref_type,
            ref_id=m.ref_id,
            unit_cost=unit_cost,
            lot_id=lot_id,
            note=m.note,
            metadata=m.metadata,
            txn_ts=m.txn_ts,
        )
