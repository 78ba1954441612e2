"""
Module: inventory_engines
Responsibility:
    Pure calculation engines for the inventory kernel.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import inventory_kernel.domain and inventory_kernel.logging_config.
    MUST NOT import SQLAlchemy, kernel db/models/services, config or modules.

Usage:
    from inventory_engines import LayerSnapshot, plan_fifo, weighted_average_cost
"""

from inventory_engines.costing import (
    FifoPlan,
    LayerSnapshot,
    LayerTake,
    group_takes_by_lot,
    plan_fifo,
    weighted_average_cost,
)

__all__ = [
    "FifoPlan",
    "LayerSnapshot",
    "LayerTake",
    "group_takes_by_lot",
    "plan_fifo",
    "weighted_average_cost",
]
