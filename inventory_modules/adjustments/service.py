"""
Adjustment Service (``inventory_modules.adjustments.service``).

Responsibility
--------------
Manual stock corrections and waste write-offs.  Each line posts a signed
``adj`` movement: gains open a layer at the stated or current cost, losses
draw FIFO.  Waste reasons accept only losses.  Void reverses the posting.

Failure Modes
-------------
- ``ValidationError`` for a waste line with a positive quantity, or a gain
  with neither a cost nor any cost history.
- ``InsufficientStockError`` / ``NegativeStockPolicyError`` for losses that
  exceed stock.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from inventory_kernel.domain.dtos import MovementInput
from inventory_kernel.domain.movement import MovementType
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_modules._documents import DocumentStatus
from inventory_modules._posting_helpers import PostingOutcome, ReversibleDocumentService
from inventory_modules.adjustments.models import AdjustmentLineInput, AdjustmentReason
from inventory_modules.adjustments.orm import AdjustmentLineModel, AdjustmentModel

logger = get_logger("modules.adjustments.service")

REF_TYPE = "ADJ"


class AdjustmentService(ReversibleDocumentService):
    """Corrections and waste."""

    document_type = REF_TYPE
    model = AdjustmentModel

    def create(
        self,
        location_id: UUID,
        reason: AdjustmentReason,
        lines: Sequence[AdjustmentLineInput],
        *,
        notes: str | None = None,
    ) -> AdjustmentModel:
        reason = AdjustmentReason(reason)
        if not lines:
            raise ValidationError("an adjustment needs at least one line", field="lines")
        for number, line in enumerate(lines, start=1):
            if reason.is_waste and line.quantity > 0:
                raise ValidationError(
                    f"line {number}: {reason.value} can only remove stock",
                    field="quantity",
                )
            if line.lot_id is not None:
                self.lots.require_for_key(line.lot_id, line.product_id, location_id)

        adjustment = AdjustmentModel(
            tenant_id=self.tenant_id,
            location_id=location_id,
            status=DocumentStatus.DRAFT.value,
            reason=reason.value,
            notes=notes,
            created_by_id=self.context.actor_id,
            lines=[
                AdjustmentLineModel(
                    line_no=number,
                    product_id=line.product_id,
                    lot_id=line.lot_id,
                    quantity=line.quantity,
                    unit_cost=line.unit_cost,
                    notes=line.notes,
                )
                for number, line in enumerate(lines, start=1)
            ],
        )
        self.session.add(adjustment)
        self.session.flush()
        logger.info(
            "adjustment_created",
            extra={
                "adjustment_id": adjustment.id,
                "reason": reason.value,
                "line_count": len(lines),
            },
        )
        return adjustment

    def record_waste(
        self,
        location_id: UUID,
        reason: AdjustmentReason,
        lines: Sequence[AdjustmentLineInput],
        *,
        notes: str | None = None,
    ) -> PostingOutcome:
        """Create and post a waste write-off in one step."""
        reason = AdjustmentReason(reason)
        if not reason.is_waste:
            raise ValidationError(f"{reason.value} is not a waste reason", field="reason")
        adjustment = self.create(location_id, reason, lines, notes=notes)
        return self.post(adjustment.id)

    def post(self, adjustment_id: UUID, *, allow_negative: bool = False) -> PostingOutcome:
        with self.log_scope(ref_type=REF_TYPE, ref_id=str(adjustment_id)):
            adjustment = self._claim(adjustment_id)
            movements = [
                MovementInput(
                    product_id=line.product_id,
                    location_id=adjustment.location_id,
                    movement_type=MovementType.ADJUSTMENT,
                    quantity=line.quantity,
                    ref_type=REF_TYPE,
                    ref_id=str(adjustment.id),
                    unit_cost=line.unit_cost if line.quantity > 0 else None,
                    lot_id=line.lot_id,
                    note=f"{adjustment.reason}: line {line.line_no}",
                    metadata={"line_no": line.line_no, "reason": adjustment.reason},
                    allow_negative=allow_negative,
                )
                for line in adjustment.lines
            ]
            posted = self.poster.post_batch(movements)
            return self._outcome(adjustment.id, DocumentStatus.POSTED, posted)
