"""
Stock count inputs (``inventory_modules.stock_counts.models``).
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class StockCountLineInput:
    """
    One physical count.

    ``lot_id`` counts a single lot; without it the count covers every lot
    of the product at the location.  ``unit_cost`` prices a gain; when
    absent a gain is valued at the product's current cost.
    """

    product_id: UUID
    counted_quantity: Decimal
    lot_id: UUID | None = None
    unit_cost: Decimal | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.counted_quantity < 0:
            raise ValueError("counted quantity cannot be negative")
