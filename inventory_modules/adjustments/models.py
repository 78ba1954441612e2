"""
Adjustment inputs (``inventory_modules.adjustments.models``).

Adjustments cover manual corrections in both directions and waste
(damaged, expired, spoiled or otherwise discarded stock), which may only
remove quantity.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class AdjustmentReason(str, Enum):
    CORRECTION = "correction"
    FOUND = "found"
    DAMAGE = "damage"
    EXPIRY = "expiry"
    SPOILAGE = "spoilage"
    WASTE = "waste"
    OTHER = "other"

    @property
    def is_waste(self) -> bool:
        return self in WASTE_REASONS


WASTE_REASONS = frozenset({
    AdjustmentReason.DAMAGE,
    AdjustmentReason.EXPIRY,
    AdjustmentReason.SPOILAGE,
    AdjustmentReason.WASTE,
})


@dataclass(frozen=True)
class AdjustmentLineInput:
    """
    One signed correction.

    Positive quantities add stock at ``unit_cost`` (or the current cost);
    negative quantities draw FIFO and ignore ``unit_cost``.
    """

    product_id: UUID
    quantity: Decimal
    lot_id: UUID | None = None
    unit_cost: Decimal | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.quantity == 0:
            raise ValueError("adjustment quantity must be non-zero")
