"""
Stock Count Service (``inventory_modules.stock_counts.service``).

Responsibility
--------------
Physical counts: ``draft -> review -> posted``.

- ``add_line`` (draft only) snapshots the system quantity from the ledger
  and stores the variance against the counted quantity.
- ``review`` freezes the line set and recomputes every snapshot, so the
  variance reflects the ledger at review time.
- ``post`` writes one signed ``adj`` movement per line with a non-zero
  variance: gains open a layer at the line's cost (or the current cost),
  losses draw FIFO.

Architecture
------------
Layer: **Modules**.  Counts are corrections, not business events to undo;
they have no void.

Failure Modes
-------------
- ``ValidationError`` when reviewing a count without lines or posting one
  without any variance.
- ``AlreadyPostedError`` for a transition from the wrong status.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from inventory_kernel.domain.dtos import MovementInput
from inventory_kernel.domain.movement import MovementType
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_modules._documents import DocumentStatus
from inventory_modules._posting_helpers import (
    DocumentService,
    PostingOutcome,
    require_status,
)
from inventory_modules.stock_counts.models import StockCountLineInput
from inventory_modules.stock_counts.orm import StockCountLineModel, StockCountModel

logger = get_logger("modules.stock_counts.service")

REF_TYPE = "STOCK_COUNT"


class StockCountService(DocumentService):
    """Count, review and post inventory variances."""

    document_type = REF_TYPE
    model = StockCountModel

    def create(self, location_id: UUID, *, notes: str | None = None) -> StockCountModel:
        count = StockCountModel(
            tenant_id=self.tenant_id,
            location_id=location_id,
            status=DocumentStatus.DRAFT.value,
            notes=notes,
            created_by_id=self.context.actor_id,
        )
        self.session.add(count)
        self.session.flush()
        logger.info("stock_count_created", extra={"count_id": count.id})
        return count

    def add_line(self, count_id: UUID, line: StockCountLineInput) -> StockCountLineModel:
        count = self.get(count_id)
        require_status(count, REF_TYPE, (DocumentStatus.DRAFT,))
        if line.lot_id is not None:
            self.lots.require_for_key(line.lot_id, line.product_id, count.location_id)

        system = self._system_quantity(line.product_id, count.location_id, line.lot_id)
        row = StockCountLineModel(
            line_no=len(count.lines) + 1,
            product_id=line.product_id,
            lot_id=line.lot_id,
            counted_quantity=line.counted_quantity,
            system_quantity=system,
            variance_quantity=line.counted_quantity - system,
            unit_cost=line.unit_cost,
            notes=line.notes,
        )
        count.lines.append(row)
        self.session.flush()

        logger.info(
            "stock_count_line_added",
            extra={
                "count_id": count_id,
                "product_id": line.product_id,
                "lot_id": line.lot_id,
                "system_quantity": system,
                "variance_quantity": row.variance_quantity,
            },
        )
        return row

    def review(self, count_id: UUID) -> StockCountModel:
        """Move to review and refresh every system-quantity snapshot."""
        draft = self.get(count_id)
        if draft.status == DocumentStatus.DRAFT.value and not draft.lines:
            raise ValidationError("a stock count needs at least one line", field="lines")

        count = self._claim(count_id, (DocumentStatus.DRAFT,), DocumentStatus.REVIEW)
        for line in count.lines:
            line.system_quantity = self._system_quantity(
                line.product_id, count.location_id, line.lot_id,
            )
            line.variance_quantity = line.counted_quantity - line.system_quantity
        self.session.flush()

        logger.info(
            "stock_count_reviewed",
            extra={
                "count_id": count_id,
                "variance_lines": sum(1 for line in count.lines if line.variance_quantity != 0),
            },
        )
        return count

    def post(self, count_id: UUID, *, allow_negative: bool = False) -> PostingOutcome:
        with self.log_scope(ref_type=REF_TYPE, ref_id=str(count_id)):
            reviewed = self.get(count_id)
            if reviewed.status == DocumentStatus.REVIEW.value and not any(
                line.variance_quantity != 0 for line in reviewed.lines
            ):
                raise ValidationError("no variance to post", field="lines")

            count = self._claim(count_id, (DocumentStatus.REVIEW,), DocumentStatus.POSTED)
            movements = [
                MovementInput(
                    product_id=line.product_id,
                    location_id=count.location_id,
                    movement_type=MovementType.ADJUSTMENT,
                    quantity=line.variance_quantity,
                    ref_type=REF_TYPE,
                    ref_id=str(count.id),
                    unit_cost=line.unit_cost if line.variance_quantity > 0 else None,
                    lot_id=line.lot_id,
                    note=f"Stock count variance: {line.variance_quantity}",
                    metadata={
                        "line_no": line.line_no,
                        "system_quantity": str(line.system_quantity),
                        "counted_quantity": str(line.counted_quantity),
                    },
                    allow_negative=allow_negative,
                )
                for line in count.lines
                if line.variance_quantity != 0
            ]
            posted = self.poster.post_batch(movements)
            return self._outcome(count.id, DocumentStatus.POSTED, posted)

    def _system_quantity(
        self, product_id: UUID, location_id: UUID, lot_id: UUID | None,
    ) -> Decimal:
        if lot_id is not None:
            return self.stock.lot_on_hand(lot_id)
        return self.stock.on_hand(product_id, location_id)
