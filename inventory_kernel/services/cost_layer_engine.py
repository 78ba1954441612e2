"""
CostLayerEngine -- FIFO cost layers: create, lock, draw down.

Responsibility:
    Creates one cost layer per inbound movement and consumes layers oldest
    first for outbound movements, returning the exact weighted-average cost
    of the draw.  Also writes the consumption audit trail, deficit layers
    under the allow-negative policy, and reinstated layers for reversed
    outbound movements.

Architecture position:
    Kernel > Services.  Uses inventory_engines.costing for the pure FIFO
    plan; owns the row locks and the mutation of ``qty_remaining_base``.

Invariants enforced:
    - FIFO order: (created_at, id) ascending within the key.
    - Exclusive access: candidate layers are read with SELECT ... FOR UPDATE
      (populate_existing so the session never works on stale remainders).
    - Reject-before-mutate: an uncovered draw under the reject policy raises
      before any layer is touched.
    - Policy consistency: a caller asking for negative stock where the
      configured policy is REJECT gets NegativeStockPolicyError.
    - Deficit netting: open deficit layers are locked with the draw and
      count against availability, so an unflagged draw never takes on-hand
      (per lot and per product/location) below zero.
    - Exact arithmetic: the returned unit cost is total cost / total quantity,
      unrounded.

Failure modes:
    - InsufficientStockError: layers cannot cover the quantity.
    - NegativeStockPolicyError: caller flag contradicts configured policy.
    - ConcurrencyConflictError: lock timeout, deadlock, serialization failure.
    - ValidationError: non-positive quantity or malformed layer input.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, select, text
from sqlalchemy.exc import DBAPIError

from inventory_engines.costing import (
    LayerSnapshot,
    LayerTake,
    plan_fifo,
    weighted_average_cost,
)
from inventory_kernel.db.types import ZERO, to_decimal
from inventory_kernel.domain.dtos import CostLayerInput
from inventory_kernel.domain.settings import NegativeStockPolicy
from inventory_kernel.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    NegativeStockPolicyError,
    ValidationError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.cost_layer import CostLayer, CostLayerConsumption
from inventory_kernel.models.stock_ledger import StockLedgerEntry
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.retry_service import (
    describe_db_error,
    is_concurrency_conflict,
)

logger = get_logger("services.cost_layer_engine")


@dataclass(frozen=True)
class FifoConsumption:
    """
    Result of one FIFO draw.

    ``takes`` is the trail in consumption order.  ``shortfall`` is non-zero
    only under the allow-negative policy and is costed at
    ``shortfall_unit_cost``.
    """

    product_id: UUID
    location_id: UUID
    lot_id: UUID | None
    quantity: Decimal
    takes: tuple[LayerTake, ...]
    shortfall: Decimal = ZERO
    shortfall_unit_cost: Decimal = ZERO

    @property
    def total_cost(self) -> Decimal:
        return sum((t.amount for t in self.takes), ZERO) + (
            self.shortfall * self.shortfall_unit_cost
        )

    @property
    def unit_cost(self) -> Decimal:
        return weighted_average_cost(self.takes, self.shortfall, self.shortfall_unit_cost)

    @property
    def layer_ids(self) -> tuple[int, ...]:
        return tuple(t.layer_id for t in self.takes)


class CostLayerEngine(BaseService[CostLayer]):
    """
    Stateful FIFO engine over the ``cost_layers`` table.

    Contract:
        Must run inside the caller's transaction; locks taken here are held
        until that transaction ends.
    """

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def create_layers(self, inputs: Sequence[CostLayerInput]) -> list[CostLayer]:
        """One new layer per input.  Layers are never merged."""
        if not inputs:
            return []

        now = self.clock.now()
        layers: list[CostLayer] = []
        for item in inputs:
            quantity = self._positive(item.quantity, "quantity")
            unit_cost = to_decimal(item.unit_cost, "unit_cost")
            if unit_cost < 0:
                raise ValidationError("unit cost must be non-negative", field="unit_cost")
            layers.append(
                CostLayer(
                    tenant_id=self.tenant_id,
                    product_id=item.product_id,
                    location_id=item.location_id,
                    lot_id=item.lot_id,
                    qty_received_base=quantity,
                    qty_remaining_base=quantity,
                    unit_cost=unit_cost,
                    source_type=item.source_type,
                    source_id=item.source_id,
                    ledger_entry_id=item.ledger_entry_id,
                    created_at=now,
                )
            )
        self.session.add_all(layers)
        self.session.flush()

        logger.info(
            "cost_layers_created",
            extra={
                "layer_count": len(layers),
                "layer_ids": [layer.id for layer in layers],
            },
        )
        return layers

    def reinstate_layer(self, entry: StockLedgerEntry) -> CostLayer:
        """New layer for a reversed outbound movement, at the entry's cost."""
        if entry.qty_delta_base <= 0:
            raise ValidationError(
                f"ledger entry {entry.id} is not inbound; nothing to reinstate",
                field="qty_delta_base",
            )
        layer = self.create_layers([
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
        ])[0]
        logger.info(
            "cost_layer_reinstated",
            extra={
                "layer_id": layer.id,
                "ledger_entry_id": entry.id,
                "reversal_of_id": entry.reversal_of_id,
            },
        )
        return layer

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def consume_fifo(
        self,
        product_id: UUID,
        location_id: UUID,
        lot_id: UUID | None,
        quantity: Decimal,
        *,
        allow_negative: bool = False,
    ) -> FifoConsumption:
        """
        Draw ``quantity`` from the key's layers, oldest first.

        ``lot_id=None`` draws across every lot of the product/location.
        """
        return self._consume(
            product_id, location_id, lot_id, quantity,
            allow_negative=allow_negative,
            operation="consume_fifo",
        )

    def consume_for_reversal(
        self,
        source_entry_id: int,
        product_id: UUID,
        location_id: UUID,
        lot_id: UUID | None,
        quantity: Decimal,
        *,
        allow_negative: bool = False,
    ) -> FifoConsumption:
        """
        Draw for a reversed inbound movement.

        The layer created by ``source_entry_id`` goes first, then the rest of
        the exact key (an unlotted entry only draws unlotted layers) in FIFO
        order.
        """
        return self._consume(
            product_id, location_id, lot_id, quantity,
            allow_negative=allow_negative,
            operation="consume_for_reversal",
            first_entry_id=source_entry_id,
            exact_lot=True,
        )

    def record_consumptions(
        self, entry: StockLedgerEntry, takes: Sequence[LayerTake],
    ) -> list[CostLayerConsumption]:
        """Append the trail linking an outbound entry to the layers it drew."""
        if not takes:
            return []
        now = self.clock.now()
        rows = [
            CostLayerConsumption(
                tenant_id=self.tenant_id,
                layer_id=take.layer_id,
                ledger_entry_id=entry.id,
                ref_type=entry.ref_type,
                ref_id=entry.ref_id,
                qty_out_base=take.quantity,
                unit_cost=take.unit_cost,
                amount=take.amount,
                created_at=now,
            )
            for take in takes
        ]
        self.session.add_all(rows)
        self.session.flush()
        return rows

    def record_deficit(
        self, entry: StockLedgerEntry, quantity: Decimal, unit_cost: Decimal,
    ) -> CostLayer:
        """
        Negative layer for the uncovered part of an allowed overdraw.

        Keeps sum(remaining) equal to the ledger on-hand.  Never consumed.
        """
        quantity = self._positive(quantity, "shortfall")
        layer = CostLayer(
            tenant_id=self.tenant_id,
            product_id=entry.product_id,
            location_id=entry.location_id,
            lot_id=entry.lot_id,
            qty_received_base=-quantity,
            qty_remaining_base=-quantity,
            unit_cost=unit_cost,
            source_type=entry.ref_type,
            source_id=entry.ref_id,
            ledger_entry_id=entry.id,
            created_at=self.clock.now(),
        )
        self.session.add(layer)
        self.session.flush()
        logger.warning(
            "negative_stock_recorded",
            extra={
                "layer_id": layer.id,
                "ledger_entry_id": entry.id,
                "product_id": entry.product_id,
                "location_id": entry.location_id,
                "shortfall": quantity,
                "unit_cost": unit_cost,
            },
        )
        return layer

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def current_unit_cost(
        self,
        product_id: UUID,
        location_id: UUID,
        lot_id: UUID | None = None,
    ) -> Decimal | None:
        """
        Most recent known unit cost of the key.

        Newest layer first, then the newest costed ledger entry.  A lot key
        with no history falls back to the product/location.
        """
        layer_stmt = (
            select(CostLayer.unit_cost)
            .where(
                CostLayer.tenant_id == self.tenant_id,
                CostLayer.product_id == product_id,
                CostLayer.location_id == location_id,
            )
            .order_by(CostLayer.created_at.desc(), CostLayer.id.desc())
            .limit(1)
        )
        ledger_stmt = (
            select(StockLedgerEntry.unit_cost)
            .where(
                StockLedgerEntry.tenant_id == self.tenant_id,
                StockLedgerEntry.product_id == product_id,
                StockLedgerEntry.location_id == location_id,
                StockLedgerEntry.unit_cost.is_not(None),
            )
            .order_by(StockLedgerEntry.created_at.desc(), StockLedgerEntry.id.desc())
            .limit(1)
        )
        if lot_id is not None:
            cost = self.session.scalar(layer_stmt.where(CostLayer.lot_id == lot_id))
            if cost is None:
                cost = self.session.scalar(
                    ledger_stmt.where(StockLedgerEntry.lot_id == lot_id)
                )
            if cost is not None:
                return cost

        cost = self.session.scalar(layer_stmt)
        if cost is None:
            cost = self.session.scalar(ledger_stmt)
        return cost

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _consume(
        self,
        product_id: UUID,
        location_id: UUID,
        lot_id: UUID | None,
        quantity: Decimal,
        *,
        allow_negative: bool,
        operation: str,
        first_entry_id: int | None = None,
        exact_lot: bool = False,
    ) -> FifoConsumption:
        quantity = self._positive(quantity, "quantity")
        if allow_negative:
            self._check_negative_policy(product_id)

        lot_scoped = lot_id is not None or exact_lot
        layers = self._lock_open_layers(
            product_id, location_id, lot_id,
            operation=operation,
            first_entry_id=first_entry_id,
            exact_lot=exact_lot,
        )
        deficits = self._lock_deficits(product_id, location_id, operation=operation)
        plan = plan_fifo(
            (
                LayerSnapshot(
                    layer_id=layer.id,
                    remaining=layer.qty_remaining_base,
                    unit_cost=layer.unit_cost,
                    lot_id=layer.lot_id,
                )
                for layer in layers
            ),
            quantity,
        )

        available = plan.covered
        if deficits and not allow_negative:
            available = self._net_available(
                product_id, location_id, lot_id, layers, deficits,
                lot_scoped=lot_scoped, operation=operation,
            )

        shortfall_cost = ZERO
        if plan.is_short or quantity > available:
            if not allow_negative:
                available = min(available, plan.covered)
                logger.warning(
                    "insufficient_stock",
                    extra={
                        "product_id": product_id,
                        "location_id": location_id,
                        "lot_id": lot_id,
                        "requested": quantity,
                        "available": available,
                        "open_deficit": sum((-d.qty_remaining_base for d in deficits), ZERO),
                    },
                )
                raise InsufficientStockError(
                    product_id=str(product_id),
                    location_id=str(location_id),
                    requested=quantity,
                    available=max(available, ZERO),
                    lot_id=str(lot_id) if lot_id is not None else None,
                )
            known = self.current_unit_cost(product_id, location_id, lot_id)
            if known is None:
                logger.warning(
                    "negative_stock_without_cost_history",
                    extra={"product_id": product_id, "location_id": location_id},
                )
            else:
                shortfall_cost = known

        by_id = {layer.id: layer for layer in layers}
        for take in plan.takes:
            layer = by_id[take.layer_id]
            layer.qty_remaining_base = layer.qty_remaining_base - take.quantity
        self.session.flush()

        result = FifoConsumption(
            product_id=product_id,
            location_id=location_id,
            lot_id=lot_id,
            quantity=quantity,
            takes=plan.takes,
            shortfall=plan.shortfall,
            shortfall_unit_cost=shortfall_cost,
        )
        logger.info(
            "fifo_consumed",
            extra={
                "operation": operation,
                "product_id": product_id,
                "location_id": location_id,
                "lot_id": lot_id,
                "quantity": quantity,
                "layer_ids": list(result.layer_ids),
                "unit_cost": result.unit_cost,
                "shortfall": plan.shortfall,
            },
        )
        return result

    def _lock_open_layers(
        self,
        product_id: UUID,
        location_id: UUID,
        lot_id: UUID | None,
        *,
        operation: str,
        first_entry_id: int | None,
        exact_lot: bool,
    ) -> list[CostLayer]:
        stmt = self._key_select(product_id, location_id).where(CostLayer.qty_remaining_base > 0)
        if lot_id is not None:
            stmt = stmt.where(CostLayer.lot_id == lot_id)
        elif exact_lot:
            stmt = stmt.where(CostLayer.lot_id.is_(None))

        ordering = [CostLayer.created_at.asc(), CostLayer.id.asc()]
        if first_entry_id is not None:
            ordering.insert(
                0, case((CostLayer.ledger_entry_id == first_entry_id, 0), else_=1)
            )
        return self._locked(stmt.order_by(*ordering), operation, product_id)

    def _lock_deficits(
        self, product_id: UUID, location_id: UUID, *, operation: str,
    ) -> list[CostLayer]:
        """Open deficit layers of the product/location, every lot."""
        stmt = (
            self._key_select(product_id, location_id)
            .where(CostLayer.qty_remaining_base < 0)
            .order_by(CostLayer.created_at.asc(), CostLayer.id.asc())
        )
        return self._locked(stmt, operation, product_id)

    def _net_available(
        self,
        product_id: UUID,
        location_id: UUID,
        lot_id: UUID | None,
        layers: Sequence[CostLayer],
        deficits: Sequence[CostLayer],
        *,
        lot_scoped: bool,
        operation: str,
    ) -> Decimal:
        """
        Quantity an unflagged draw may take while deficits are open.

        Positive layers backing an open deficit are not available.  A lot
        draw is limited by both the lot's net and the product/location net.
        """
        in_scope = [d for d in deficits if not lot_scoped or d.lot_id == lot_id]
        scope_net = sum((layer.qty_remaining_base for layer in layers), ZERO) + sum(
            (d.qty_remaining_base for d in in_scope), ZERO
        )
        if not lot_scoped:
            return scope_net

        every_lot = self._locked(
            self._key_select(product_id, location_id)
            .where(CostLayer.qty_remaining_base > 0)
            .order_by(CostLayer.created_at.asc(), CostLayer.id.asc()),
            operation,
            product_id,
        )
        key_net = sum((layer.qty_remaining_base for layer in every_lot), ZERO) + sum(
            (d.qty_remaining_base for d in deficits), ZERO
        )
        return min(scope_net, key_net)

    def _key_select(self, product_id: UUID, location_id: UUID):
        return select(CostLayer).where(
            CostLayer.tenant_id == self.tenant_id,
            CostLayer.product_id == product_id,
            CostLayer.location_id == location_id,
        )

    def _locked(self, stmt, operation: str, product_id: UUID) -> list[CostLayer]:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
        try:
            if self.dialect_name == "postgresql":
                self.session.execute(
                    text(f"SET LOCAL lock_timeout = '{int(self.settings.lock_timeout_ms)}ms'")
                )
            return list(self.session.scalars(stmt))
        except DBAPIError as exc:
            if is_concurrency_conflict(exc):
                logger.warning(
                    "cost_layer_lock_conflict",
                    extra={"operation": operation, "product_id": product_id},
                )
                raise ConcurrencyConflictError(operation, describe_db_error(exc)) from exc
            raise

    def _check_negative_policy(self, product_id: UUID) -> None:
        policy = self.settings.negative_stock_policy_for(self.tenant_id, product_id)
        if policy is not NegativeStockPolicy.ALLOW:
            raise NegativeStockPolicyError(
                tenant_id=str(self.tenant_id),
                product_id=str(product_id),
                policy=policy.value,
            )

    @staticmethod
    def _positive(value: Decimal, field: str) -> Decimal:
        try:
            quantity = to_decimal(value, field)
        except (TypeError, ValueError) as exc:
            raise ValidationError(str(exc), field=field) from exc
        if quantity <= 0:
            raise ValidationError(f"{field} must be positive, got {quantity}", field=field)
        return quantity
