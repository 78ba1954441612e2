"""
Goods Receipts Module (``inventory_modules.goods_receipts``).

Inbound stock from suppliers.  Posting opens one FIFO cost layer per line
at the line's unit cost; lot-tracked lines find or create their lot.
"""

from inventory_modules.goods_receipts.models import GoodsReceiptLineInput
from inventory_modules.goods_receipts.service import REF_TYPE, GoodsReceiptService

__all__ = [
    "GoodsReceiptLineInput",
    "GoodsReceiptService",
    "REF_TYPE",
]
