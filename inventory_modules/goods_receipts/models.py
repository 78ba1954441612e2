"""
Goods Receipt inputs (``inventory_modules.goods_receipts.models``).

Frozen value objects handed to ``GoodsReceiptService.create``.  No I/O.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class GoodsReceiptLineInput:
    """
    One received product.

    ``lot_no`` makes the line lot-tracked; the lot is found or created at
    the receipt's location when the receipt is posted.
    """

    product_id: UUID
    quantity: Decimal
    unit_cost: Decimal
    lot_no: str | None = None
    expiry_date: date | None = None
    manufacture_date: date | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("receipt quantity must be positive")
        if self.unit_cost < 0:
            raise ValueError("receipt unit cost must be non-negative")
