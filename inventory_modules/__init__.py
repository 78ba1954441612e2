"""
Inventory document modules.

Business documents that post stock movements through the kernel:

    goods_receipts   GR           inbound from suppliers
    orders           ORDER        outbound to customers
    transfers        XFER         between locations
    stock_counts     STOCK_COUNT  count variances
    adjustments      ADJ          corrections and waste
    production       PROD         ingredients in, output out
    returns          RETURN_ORDER customer returns in, supplier returns out

Each module has ``models.py`` (frozen inputs), ``orm.py`` (document tables)
and ``service.py`` (create/post/void).  Services flush only; callers wrap
them in a transaction, usually through ``TransactionRunner``.
"""

from inventory_modules._documents import DocumentStatus
from inventory_modules._posting_helpers import PostingOutcome

__all__ = [
    "DocumentStatus",
    "PostingOutcome",
]
