"""
Inventory Kernel

An append-only stock ledger with FIFO cost layers:
- Signed, immutable ledger entries per (tenant, product, location, lot)
- Receipt-time cost layers drawn down oldest-first under row locks
- Lot identity for perishable batches
- Exact compensating reversals for voided postings
"""

__version__ = "0.1.0"
