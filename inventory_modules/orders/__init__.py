"""
Orders Module (``inventory_modules.orders``).

Outbound stock to customers, costed FIFO at posting.
"""

from inventory_modules.orders.models import OrderLineInput
from inventory_modules.orders.service import REF_TYPE, OrderService

__all__ = [
    "OrderLineInput",
    "OrderService",
    "REF_TYPE",
]
