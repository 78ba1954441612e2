"""
Production inputs (``inventory_modules.production.models``).

A production order consumes ingredient lines and yields one output product.
Ingredients are stated per order; recipe management is external.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class IngredientInput:
    product_id: UUID
    quantity: Decimal
    lot_id: UUID | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("ingredient quantity must be positive")


@dataclass(frozen=True)
class ProductionOutput:
    """The finished product, optionally lot-tracked."""

    product_id: UUID
    quantity: Decimal
    lot_no: str | None = None
    expiry_date: date | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("output quantity must be positive")
