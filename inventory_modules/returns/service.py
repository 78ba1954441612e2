"""
Return Service (``inventory_modules.returns.service``).

Responsibility
--------------
Posts return orders against the ledger under ref type ``RETURN_ORDER``:

- customer return: every line is received back (``rcv``) at the line's
  unit cost, or the current cost when the line gives none;
- supplier return: every line is issued (``iss``) FIFO from the order's
  location, and the drawn cost is stored on the line.

Void reverses every ledger entry of the return.

Architecture
------------
Layer: **Modules** -- thin orchestration over ``MovementPoster``.

Failure Modes
-------------
- ``ValidationError`` for an empty return, or a customer return line
  without a cost and without cost history.
- ``InsufficientStockError`` when a supplier return cannot be covered, or
  when voiding a customer return whose goods were already issued.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.dtos import MovementInput
from inventory_kernel.domain.movement import MovementType
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_modules._documents import DocumentStatus
from inventory_modules._posting_helpers import (
    PostingOutcome,
    ReversibleDocumentService,
    split_posted,
)
from inventory_modules.returns.models import ReturnLineInput, ReturnType
from inventory_modules.returns.orm import ReturnOrderLineModel, ReturnOrderModel

logger = get_logger("modules.returns.service")

REF_TYPE = "RETURN_ORDER"


class ReturnService(ReversibleDocumentService):
    """Customer and supplier returns."""

    document_type = REF_TYPE
    model = ReturnOrderModel

    def create(
        self,
        location_id: UUID,
        return_type: ReturnType,
        lines: Sequence[ReturnLineInput],
        *,
        partner_ref: str | None = None,
        notes: str | None = None,
    ) -> ReturnOrderModel:
        return_type = ReturnType(return_type)
        if not lines:
            raise ValidationError("a return order needs at least one line", field="lines")
        for line in lines:
            if line.lot_id is not None:
                self.lots.require_for_key(line.lot_id, line.product_id, location_id)

        return_order = ReturnOrderModel(
            tenant_id=self.tenant_id,
            location_id=location_id,
            status=DocumentStatus.DRAFT.value,
            return_type=return_type.value,
            partner_ref=partner_ref,
            notes=notes,
            created_by_id=self.context.actor_id,
            lines=[
                ReturnOrderLineModel(
                    line_no=number,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    lot_id=line.lot_id,
                    unit_cost=line.unit_cost,
                    reason=line.reason,
                )
                for number, line in enumerate(lines, start=1)
            ],
        )
        self.session.add(return_order)
        self.session.flush()
        logger.info(
            "return_order_created",
            extra={
                "return_order_id": return_order.id,
                "return_type": return_type.value,
                "line_count": len(lines),
            },
        )
        return return_order

    def post(self, return_id: UUID, *, allow_negative: bool = False) -> PostingOutcome:
        """Post the return.  ``allow_negative`` only applies to supplier returns."""
        with self.log_scope(ref_type=REF_TYPE, ref_id=str(return_id)):
            return_order = self._claim(return_id)
            inbound = return_order.return_type == ReturnType.CUSTOMER.value

            movements = [
                MovementInput(
                    product_id=line.product_id,
                    location_id=return_order.location_id,
                    movement_type=MovementType.RECEIPT if inbound else MovementType.ISSUE,
                    quantity=line.quantity if inbound else -line.quantity,
                    ref_type=REF_TYPE,
                    ref_id=str(return_order.id),
                    unit_cost=line.unit_cost if inbound else None,
                    lot_id=line.lot_id,
                    note=f"Return line {line.line_no}: {line.reason or 'Return'}",
                    metadata={
                        "line_no": line.line_no,
                        "return_type": return_order.return_type,
                        "partner_ref": return_order.partner_ref,
                    },
                    allow_negative=allow_negative and not inbound,
                )
                for line in return_order.lines
            ]
            posted = self.poster.post_batch(movements)

            groups = split_posted(posted, [m.quantity for m in movements])
            for line, rows in zip(return_order.lines, groups):
                value = sum((row.value for row in rows), ZERO)
                line.cost_amount = value if inbound else -value

            return self._outcome(return_order.id, DocumentStatus.POSTED, posted)
