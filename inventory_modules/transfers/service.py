"""
Transfer Service (``inventory_modules.transfers.service``).

Responsibility
--------------
Moves stock between two locations of a tenant.  Posting issues each line
from the source (``xfer_out``, FIFO-costed, one ledger row per lot drawn)
and receives the same quantities at the destination (``xfer_in``) at the
cost that left the source, so value is carried across.  Lot numbers travel
with the goods: a lot drawn at the source is found or created at the
destination under the same number and dates.

Architecture
------------
Layer: **Modules** -- two ``post_batch`` calls in the caller's transaction.
The inbound batch is posted after the outbound batch so the destination
layers exist only once the source draw has succeeded.

Invariants
----------
- Per product, the quantity leaving the source equals the quantity arriving
  at the destination.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.dtos import LotInput, MovementInput, PostedMovement
from inventory_kernel.domain.movement import MovementType
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_modules._documents import DocumentStatus
from inventory_modules._posting_helpers import (
    PostingOutcome,
    ReversibleDocumentService,
    split_posted,
)
from inventory_modules.transfers.models import TransferLineInput
from inventory_modules.transfers.orm import TransferLineModel, TransferModel

logger = get_logger("modules.transfers.service")

REF_TYPE = "XFER"


class TransferService(ReversibleDocumentService):
    """Inter-location stock transfers."""

    document_type = REF_TYPE
    model = TransferModel

    def create(
        self,
        source_location_id: UUID,
        destination_location_id: UUID,
        lines: Sequence[TransferLineInput],
        *,
        notes: str | None = None,
    ) -> TransferModel:
        if source_location_id == destination_location_id:
            raise ValidationError(
                "source and destination locations must differ",
                field="destination_location_id",
            )
        if not lines:
            raise ValidationError("a transfer needs at least one line", field="lines")
        for line in lines:
            if line.lot_id is not None:
                self.lots.require_for_key(line.lot_id, line.product_id, source_location_id)

        transfer = TransferModel(
            tenant_id=self.tenant_id,
            location_id=source_location_id,
            destination_location_id=destination_location_id,
            status=DocumentStatus.DRAFT.value,
            notes=notes,
            created_by_id=self.context.actor_id,
            lines=[
                TransferLineModel(
                    line_no=number,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    lot_id=line.lot_id,
                    notes=line.notes,
                )
                for number, line in enumerate(lines, start=1)
            ],
        )
        self.session.add(transfer)
        self.session.flush()
        logger.info(
            "transfer_created",
            extra={
                "transfer_id": transfer.id,
                "source_location_id": source_location_id,
                "destination_location_id": destination_location_id,
                "line_count": len(lines),
            },
        )
        return transfer

    def post(self, transfer_id: UUID) -> PostingOutcome:
        with self.log_scope(ref_type=REF_TYPE, ref_id=str(transfer_id)):
            transfer = self._claim(transfer_id)
            ref_id = str(transfer.id)

            outbound = [
                MovementInput(
                    product_id=line.product_id,
                    location_id=transfer.location_id,
                    movement_type=MovementType.TRANSFER_OUT,
                    quantity=-line.quantity,
                    ref_type=REF_TYPE,
                    ref_id=ref_id,
                    lot_id=line.lot_id,
                    note=f"Transfer line {line.line_no} to {transfer.destination_location_id}",
                    metadata={"line_no": line.line_no},
                )
                for line in transfer.lines
            ]
            issued = self.poster.post_batch(outbound)

            groups = split_posted(issued, [m.quantity for m in outbound])
            inbound: list[MovementInput] = []
            for line, rows in zip(transfer.lines, groups):
                line.cost_amount = -sum((row.value for row in rows), ZERO)
                for row in rows:
                    inbound.append(
                        MovementInput(
                            product_id=row.product_id,
                            location_id=transfer.destination_location_id,
                            movement_type=MovementType.TRANSFER_IN,
                            quantity=-row.quantity,
                            ref_type=REF_TYPE,
                            ref_id=ref_id,
                            unit_cost=row.unit_cost if row.unit_cost is not None else ZERO,
                            lot_id=self._destination_lot(row, transfer.destination_location_id),
                            note=f"Transfer line {line.line_no} from {transfer.location_id}",
                            metadata={"line_no": line.line_no, "source_entry_id": row.ledger_entry_id},
                        )
                    )
            received = self.poster.post_batch(inbound)

            return self._outcome(transfer.id, DocumentStatus.POSTED, [*issued, *received])

    def _destination_lot(self, row: PostedMovement, destination_id: UUID) -> UUID | None:
        if row.lot_id is None:
            return None
        source = self.lots.get(row.lot_id)
        return self.lots.find_or_create(
            LotInput(
                product_id=source.product_id,
                location_id=destination_id,
                lot_no=source.lot_no,
                expiry_date=source.expiry_date,
                manufacture_date=source.manufacture_date,
                received_date=source.received_date,
                notes=source.notes,
                metadata={"transferred_from_lot_id": str(source.id)},
            )
        )
