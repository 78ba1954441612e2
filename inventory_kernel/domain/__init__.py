"""
Pure domain layer.

Movement vocabulary, value objects handed between services, and the clock
abstraction.  No ORM, no database, no I/O.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import (
    CostLayerInput,
    LedgerEntryInput,
    LotInput,
    MovementInput,
    PostedMovement,
    ReversalOptions,
    TenantContext,
)
from inventory_kernel.domain.movement import MovementType
from inventory_kernel.domain.settings import (
    KernelSettings,
    NegativeStockPolicy,
    NegativeStockRule,
    RetryPolicy,
)

__all__ = [
    "Clock",
    "CostLayerInput",
    "DeterministicClock",
    "KernelSettings",
    "LedgerEntryInput",
    "LotInput",
    "MovementInput",
    "MovementType",
    "NegativeStockPolicy",
    "NegativeStockRule",
    "PostedMovement",
    "RetryPolicy",
    "ReversalOptions",
    "SystemClock",
    "TenantContext",
]
