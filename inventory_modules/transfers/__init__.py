"""
Transfers Module (``inventory_modules.transfers``).

Stock moved between locations at FIFO cost, lots carried along.
"""

from inventory_modules.transfers.models import TransferLineInput
from inventory_modules.transfers.service import REF_TYPE, TransferService

__all__ = [
    "REF_TYPE",
    "TransferLineInput",
    "TransferService",
]
