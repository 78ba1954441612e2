"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.cost_layer_engine import CostLayerEngine, FifoConsumption
from inventory_kernel.services.lot_registry import LotRegistry
from inventory_kernel.services.movement_poster import MovementPoster
from inventory_kernel.services.retry_service import (
    TransactionRunner,
    is_concurrency_conflict,
)
from inventory_kernel.services.reversal_builder import ReversalService, build_reversal
from inventory_kernel.services.stock_ledger import StockLedgerService

__all__ = [
    "CostLayerEngine",
    "FifoConsumption",
    "LotRegistry",
    "MovementPoster",
    "ReversalService",
    "StockLedgerService",
    "TransactionRunner",
    "build_reversal",
    "is_concurrency_conflict",
]
