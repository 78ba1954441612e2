"""
Stock Counts Module (``inventory_modules.stock_counts``).

Physical counts whose variances post as signed adjustments.
"""

from inventory_modules.stock_counts.models import StockCountLineInput
from inventory_modules.stock_counts.service import REF_TYPE, StockCountService

__all__ = [
    "REF_TYPE",
    "StockCountLineInput",
    "StockCountService",
]
