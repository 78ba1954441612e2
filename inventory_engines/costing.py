"""
inventory_engines.costing -- FIFO consumption planning and weighted-average cost.

Responsibility:
    Given the open cost layers of one (product, location[, lot]) key in FIFO
    order and a quantity to issue, decide how much to take from each layer
    and what the issue costs.  The stateful side (row locks, decrementing
    remaining quantities, persisting the trail) lives in
    inventory_kernel.services.cost_layer_engine.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  May only import
    inventory_kernel.domain and inventory_kernel.logging_config.

Invariants enforced:
    - Layers are consumed strictly in the order given; a later layer is only
      touched once every earlier layer is exhausted.
    - sum(take.quantity) + shortfall == requested quantity.
    - No take exceeds its layer's remaining quantity.
    - Costs are exact Decimal arithmetic; no rounding happens here.

Failure modes:
    - ValueError if the requested quantity is not positive, a layer has a
      non-positive remaining quantity, or a layer has a negative cost.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.costing")

_ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class LayerSnapshot:
    """An open cost layer as seen by the planner."""

    layer_id: int
    remaining: Decimal
    unit_cost: Decimal
    lot_id: UUID | None = None

    def __post_init__(self) -> None:
        if self.remaining <= 0:
            raise ValueError(f"layer {self.layer_id} has no remaining quantity")
        if self.unit_cost < 0:
            raise ValueError(f"layer {self.layer_id} has negative unit cost")


@dataclass(frozen=True, slots=True)
class LayerTake:
    """Quantity drawn from one layer."""

    layer_id: int
    quantity: Decimal
    unit_cost: Decimal
    lot_id: UUID | None = None

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_cost


@dataclass(frozen=True, slots=True)
class FifoPlan:
    """
    Outcome of planning one FIFO draw.

    Contract:
        ``takes`` lists the layers in consumption order.  ``shortfall`` is the
        part of ``requested`` no layer could cover (zero when fully covered).
    """

    requested: Decimal
    takes: tuple[LayerTake, ...]
    shortfall: Decimal

    @property
    def covered(self) -> Decimal:
        return self.requested - self.shortfall

    @property
    def layered_cost(self) -> Decimal:
        return sum((take.amount for take in self.takes), _ZERO)

    @property
    def is_short(self) -> bool:
        return self.shortfall > 0


def plan_fifo(layers: Iterable[LayerSnapshot], quantity: Decimal) -> FifoPlan:
    """
    Plan consumption of ``quantity`` from ``layers`` in the order given.

    Args:
        layers: Open layers, oldest first.
        quantity: Positive quantity to issue.

    Returns:
        FifoPlan with one take per layer touched and any uncovered shortfall.
    """
    if quantity <= 0:
        raise ValueError(f"quantity to consume must be positive, got {quantity}")

    needed = quantity
    takes: list[LayerTake] = []
    for layer in layers:
        if needed <= 0:
            break
        take = min(layer.remaining, needed)
        takes.append(
            LayerTake(
                layer_id=layer.layer_id,
                quantity=take,
                unit_cost=layer.unit_cost,
                lot_id=layer.lot_id,
            )
        )
        needed -= take

    plan = FifoPlan(requested=quantity, takes=tuple(takes), shortfall=needed)
    logger.debug(
        "fifo_planned",
        extra={
            "requested": str(quantity),
            "layers_touched": len(takes),
            "shortfall": str(needed),
        },
    )
    return plan


def weighted_average_cost(
    takes: Sequence[LayerTake],
    shortfall: Decimal = _ZERO,
    shortfall_unit_cost: Decimal = _ZERO,
) -> Decimal:
    """
    Exact weighted-average unit cost of a draw: total cost / total quantity.

    The shortfall, if any, is costed at ``shortfall_unit_cost``.  Returns zero
    for an empty draw.
    """
    total_qty = sum((t.quantity for t in takes), _ZERO) + shortfall
    if total_qty == 0:
        return _ZERO
    total_cost = sum((t.amount for t in takes), _ZERO) + shortfall * shortfall_unit_cost
    return total_cost / total_qty


def group_takes_by_lot(
    takes: Sequence[LayerTake],
) -> dict[UUID | None, tuple[LayerTake, ...]]:
    """Group takes by lot, preserving first-seen lot order and FIFO order within a lot."""
    grouped: dict[UUID | None, list[LayerTake]] = {}
    for take in takes:
        grouped.setdefault(take.lot_id, []).append(take)
    return {lot: tuple(items) for lot, items in grouped.items()}
