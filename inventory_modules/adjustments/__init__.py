"""
Adjustments Module (``inventory_modules.adjustments``).

Signed stock corrections, including waste write-offs.
"""

from inventory_modules.adjustments.models import (
    WASTE_REASONS,
    AdjustmentLineInput,
    AdjustmentReason,
)
from inventory_modules.adjustments.service import REF_TYPE, AdjustmentService

__all__ = [
    "REF_TYPE",
    "WASTE_REASONS",
    "AdjustmentLineInput",
    "AdjustmentReason",
    "AdjustmentService",
]
