"""
Order inputs (``inventory_modules.orders.models``).
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class OrderLineInput:
    """
    One product shipped to a customer.

    ``lot_id`` pins the line to a lot; without it the issue draws FIFO
    across every lot of the product at the order's location.
    """

    product_id: UUID
    quantity: Decimal
    lot_id: UUID | None = None
    unit_price: Decimal | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("order quantity must be positive")
