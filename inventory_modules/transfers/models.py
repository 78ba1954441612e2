"""
Transfer inputs (``inventory_modules.transfers.models``).
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class TransferLineInput:
    """
    One product moved between locations.

    ``lot_id`` is a lot at the source location.  Drawn lots are carried to
    the destination under the same lot number.
    """

    product_id: UUID
    quantity: Decimal
    lot_id: UUID | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("transfer quantity must be positive")
