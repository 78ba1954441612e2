"""
Goods Receipt Service (``inventory_modules.goods_receipts.service``).

Responsibility
--------------
Creates draft receipts and posts them: each line is found-or-created as a
lot (when it carries a lot number) and received as an ``rcv`` movement at
the line's unit cost, which opens one cost layer per line.  Void reverses
every ledger entry of the receipt.

Architecture
------------
Layer: **Modules** -- thin orchestration over ``MovementPoster``.  Flushes
only; the caller owns the transaction.

Failure Modes
-------------
- ``ValidationError`` for an empty receipt or malformed line.
- ``AlreadyPostedError`` when the receipt is not a draft any more.
- ``InsufficientStockError`` when voiding a receipt whose goods were
  already issued.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from inventory_kernel.domain.dtos import LotInput, MovementInput
from inventory_kernel.domain.movement import MovementType
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_modules._documents import DocumentStatus
from inventory_modules._posting_helpers import PostingOutcome, ReversibleDocumentService
from inventory_modules.goods_receipts.models import GoodsReceiptLineInput
from inventory_modules.goods_receipts.orm import GoodsReceiptLineModel, GoodsReceiptModel

logger = get_logger("modules.goods_receipts.service")

REF_TYPE = "GR"


class GoodsReceiptService(ReversibleDocumentService):
    """Receive purchased goods into stock."""

    document_type = REF_TYPE
    model = GoodsReceiptModel

    def create(
        self,
        location_id: UUID,
        lines: Sequence[GoodsReceiptLineInput],
        *,
        supplier_ref: str | None = None,
        received_date: date | None = None,
        notes: str | None = None,
    ) -> GoodsReceiptModel:
        if not lines:
            raise ValidationError("a goods receipt needs at least one line", field="lines")

        receipt = GoodsReceiptModel(
            tenant_id=self.tenant_id,
            location_id=location_id,
            status=DocumentStatus.DRAFT.value,
            supplier_ref=supplier_ref,
            received_date=received_date,
            notes=notes,
            created_by_id=self.context.actor_id,
            lines=[
                GoodsReceiptLineModel(
                    line_no=number,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_cost=line.unit_cost,
                    lot_no=line.lot_no,
                    expiry_date=line.expiry_date,
                    manufacture_date=line.manufacture_date,
                    notes=line.notes,
                )
                for number, line in enumerate(lines, start=1)
            ],
        )
        self.session.add(receipt)
        self.session.flush()

        logger.info(
            "goods_receipt_created",
            extra={"receipt_id": receipt.id, "line_count": len(lines)},
        )
        return receipt

    def post(self, receipt_id: UUID) -> PostingOutcome:
        with self.log_scope(ref_type=REF_TYPE, ref_id=str(receipt_id)):
            receipt = self._claim(receipt_id)
            received = receipt.received_date or self.clock.business_date()

            movements: list[MovementInput] = []
            for line in receipt.lines:
                if line.lot_no:
                    line.lot_id = self.lots.find_or_create(
                        LotInput(
                            product_id=line.product_id,
                            location_id=receipt.location_id,
                            lot_no=line.lot_no,
                            expiry_date=line.expiry_date,
                            manufacture_date=line.manufacture_date,
                            received_date=received,
                        )
                    )
                movements.append(
                    MovementInput(
                        product_id=line.product_id,
                        location_id=receipt.location_id,
                        movement_type=MovementType.RECEIPT,
                        quantity=line.quantity,
                        ref_type=REF_TYPE,
                        ref_id=str(receipt.id),
                        unit_cost=line.unit_cost,
                        lot_id=line.lot_id,
                        note=f"Goods receipt line {line.line_no}",
                        metadata={"line_no": line.line_no, "supplier_ref": receipt.supplier_ref},
                    )
                )

            posted = self.poster.post_batch(movements)
            return self._outcome(receipt.id, DocumentStatus.POSTED, posted)
