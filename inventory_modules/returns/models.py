"""
Return order inputs (``inventory_modules.returns.models``).
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ReturnType(str, Enum):
    """Direction of a return order."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"


@dataclass(frozen=True)
class ReturnLineInput:
    """
    One returned product.

    ``unit_cost`` only matters for customer returns: the goods come back at
    that cost, or at the product's current cost when it is omitted.
    Supplier returns are always costed FIFO.
    """

    product_id: UUID
    quantity: Decimal
    lot_id: UUID | None = None
    unit_cost: Decimal | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("return quantity must be positive")
        if self.unit_cost is not None and self.unit_cost < 0:
            raise ValueError("return unit cost must be non-negative")
