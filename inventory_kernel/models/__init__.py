"""ORM models for the inventory kernel."""

from inventory_kernel.models.cost_layer import CostLayer, CostLayerConsumption
from inventory_kernel.models.lot import Lot
from inventory_kernel.models.stock_ledger import StockLedgerEntry

__all__ = [
    "CostLayer",
    "CostLayerConsumption",
    "Lot",
    "StockLedgerEntry",
]
