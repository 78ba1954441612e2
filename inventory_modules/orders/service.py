"""
Order Service (``inventory_modules.orders.service``).

Responsibility
--------------
Ships customer orders: posting issues every line (``iss``) from the
order's location, FIFO-costed, and stores the cost of goods on the line.
Void reinstates the drawn quantities as new layers at the issued cost.

Architecture
------------
Layer: **Modules** -- thin orchestration over ``MovementPoster``.

Failure Modes
-------------
- ``InsufficientStockError`` when a line cannot be covered and the caller
  did not ask for negative stock.
- ``NegativeStockPolicyError`` when it did, but the configured policy for
  the product is ``reject``.
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
from inventory_modules.orders.models import OrderLineInput
from inventory_modules.orders.orm import OrderLineModel, OrderModel

logger = get_logger("modules.orders.service")

REF_TYPE = "ORDER"


class OrderService(ReversibleDocumentService):
    """Issue stock against customer orders."""

    document_type = REF_TYPE
    model = OrderModel

    def create(
        self,
        location_id: UUID,
        lines: Sequence[OrderLineInput],
        *,
        customer_ref: str | None = None,
        notes: str | None = None,
    ) -> OrderModel:
        if not lines:
            raise ValidationError("an order needs at least one line", field="lines")
        for line in lines:
            if line.lot_id is not None:
                self.lots.require_for_key(line.lot_id, line.product_id, location_id)

        order = OrderModel(
            tenant_id=self.tenant_id,
            location_id=location_id,
            status=DocumentStatus.DRAFT.value,
            customer_ref=customer_ref,
            notes=notes,
            created_by_id=self.context.actor_id,
            lines=[
                OrderLineModel(
                    line_no=number,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    lot_id=line.lot_id,
                    unit_price=line.unit_price,
                    notes=line.notes,
                )
                for number, line in enumerate(lines, start=1)
            ],
        )
        self.session.add(order)
        self.session.flush()
        logger.info("order_created", extra={"order_id": order.id, "line_count": len(lines)})
        return order

    def post(self, order_id: UUID, *, allow_negative: bool = False) -> PostingOutcome:
        with self.log_scope(ref_type=REF_TYPE, ref_id=str(order_id)):
            order = self._claim(order_id)
            movements = [
                MovementInput(
                    product_id=line.product_id,
                    location_id=order.location_id,
                    movement_type=MovementType.ISSUE,
                    quantity=-line.quantity,
                    ref_type=REF_TYPE,
                    ref_id=str(order.id),
                    lot_id=line.lot_id,
                    note=f"Order line {line.line_no}",
                    metadata={"line_no": line.line_no, "customer_ref": order.customer_ref},
                    allow_negative=allow_negative,
                )
                for line in order.lines
            ]
            posted = self.poster.post_batch(movements)

            groups = split_posted(posted, [m.quantity for m in movements])
            for line, rows in zip(order.lines, groups):
                line.cost_amount = -sum((row.value for row in rows), ZERO)

            return self._outcome(order.id, DocumentStatus.POSTED, posted)
