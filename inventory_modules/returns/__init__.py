"""
Returns Module (``inventory_modules.returns``).

Customer returns bring goods back into stock; supplier returns send them
out again, costed FIFO.
"""

from inventory_modules.returns.models import ReturnLineInput, ReturnType
from inventory_modules.returns.service import REF_TYPE, ReturnService

__all__ = [
    "REF_TYPE",
    "ReturnLineInput",
    "ReturnService",
    "ReturnType",
]
