"""
Production Module (``inventory_modules.production``).

Ingredients consumed FIFO; output received at their total cost.
"""

from inventory_modules.production.models import IngredientInput, ProductionOutput
from inventory_modules.production.service import REF_TYPE, ProductionService

__all__ = [
    "REF_TYPE",
    "IngredientInput",
    "ProductionOutput",
    "ProductionService",
]
