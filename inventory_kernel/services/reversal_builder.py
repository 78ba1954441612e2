"""
Reversal builder and service -- exact compensating entries.

Responsibility:
    ``build_reversal`` derives, for a set of ledger entries, the entries that
    cancel them: quantity negated, unit cost and lot preserved, type mapped
    to its reversal variant.  ``ReversalService.reverse_reference`` finds the
    entries of a business reference and posts their reversal through the
    MovementPoster, so the cost layers are compensated too.

Architecture position:
    Kernel > Services.  ``build_reversal`` is pure; ``ReversalService`` is
    the stateful pairing used by document void operations.

Invariants enforced:
    - For every original entry there is exactly one compensating entry and
      the pair sums to zero quantity for the same key.
    - An entry is reversed at most once (uq_stock_ledger_reversal_of, plus
      an explicit AlreadyReversedError check).
    - Reversal rows are never themselves reversed.

Failure modes:
    - NothingToReverseError: the reference has no ledger entries.
    - AlreadyReversedError: at least one entry was already reversed.
    - ValidationError: asked to reverse a reversal row.
    - InsufficientStockError: reversing a receipt whose goods were issued.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select

from inventory_kernel.domain.dtos import LedgerEntryInput, PostedMovement, ReversalOptions
from inventory_kernel.exceptions import (
    AlreadyReversedError,
    NothingToReverseError,
    ValidationError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.stock_ledger import StockLedgerEntry
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.movement_poster import MovementPoster

logger = get_logger("services.reversal")


def build_reversal(
    entries: Sequence[StockLedgerEntry],
    options: ReversalOptions | None = None,
) -> list[LedgerEntryInput]:
    """Compensating ledger inputs for ``entries``, in the same order."""
    options = options or ReversalOptions()
    reversals: list[LedgerEntryInput] = []
    for entry in entries:
        movement = entry.movement
        if movement.is_reversal:
            raise ValidationError(
                f"ledger entry {entry.id} is a {movement.value} and cannot be reversed",
                field="movement_type",
            )
        original_note = entry.note or f"{entry.ref_type} {entry.ref_id}"
        reversals.append(
            LedgerEntryInput(
                product_id=entry.product_id,
                location_id=entry.location_id,
                movement_type=options.override_type or movement.reversal(),
                quantity=-entry.qty_delta_base,
                ref_type=entry.ref_type,
                ref_id=options.override_ref_id or entry.ref_id,
                unit_cost=entry.unit_cost,
                lot_id=entry.lot_id,
                note=f"{options.note_prefix}{original_note}",
                metadata={"reversal_of": entry.id},
                txn_ts=options.txn_ts,
                reversal_of_id=entry.id,
                actor_id=options.actor_id,
            )
        )
    return reversals


class ReversalService(BaseService[StockLedgerEntry]):
    """Void support: reverse every ledger entry of one business reference."""

    def reverse_reference(
        self,
        ref_type: str,
        ref_id: str,
        options: ReversalOptions | None = None,
    ) -> list[PostedMovement]:
        options = options or ReversalOptions()
        with self.log_scope(ref_type=ref_type, ref_id=ref_id):
            entries = list(
                self.session.scalars(
                    select(StockLedgerEntry)
                    .where(
                        StockLedgerEntry.tenant_id == self.tenant_id,
                        StockLedgerEntry.ref_type == ref_type,
                        StockLedgerEntry.ref_id == ref_id,
                        StockLedgerEntry.reversal_of_id.is_(None),
                    )
                    .order_by(StockLedgerEntry.id)
                    .with_for_update()
                )
            )
            if not entries:
                raise NothingToReverseError(ref_type, ref_id)

            ids = [entry.id for entry in entries]
            already = list(
                self.session.scalars(
                    select(StockLedgerEntry.reversal_of_id).where(
                        StockLedgerEntry.reversal_of_id.in_(ids)
                    )
                )
            )
            if already:
                logger.warning(
                    "reversal_rejected_already_reversed",
                    extra={"entry_ids": sorted(already)},
                )
                raise AlreadyReversedError(ref_type, ref_id, sorted(already))

            reversals = build_reversal(entries, options)
            poster = MovementPoster(self.session, self.context, self.clock, self.settings)
            posted = poster.post_reversal(reversals, allow_negative=options.allow_negative)

            logger.info(
                "reference_reversed",
                extra={
                    "original_entry_ids": ids,
                    "reversal_entry_ids": [p.ledger_entry_id for p in posted],
                },
            )
            return posted
