"""Selectors for the inventory kernel (read side)."""

from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.stock_selector import (
    ConsumptionView,
    LedgerEntryView,
    LotBalance,
    LotReconciliation,
    ReconciliationResult,
    StockSelector,
)

__all__ = [
    "BaseSelector",
    "ConsumptionView",
    "LedgerEntryView",
    "LotBalance",
    "LotReconciliation",
    "ReconciliationResult",
    "StockSelector",
]
