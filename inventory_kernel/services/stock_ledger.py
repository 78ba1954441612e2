"""
StockLedgerService -- the only writer of stock ledger entries.

Responsibility:
    Validates and persists a batch of signed quantity movements.  Never
    touches cost layers; layer effects are the MovementPoster's job.

Architecture position:
    Kernel > Services.  Called by MovementPoster only.

Invariants enforced:
    - Validation happens for the whole batch before anything is added to
      the session.
    - Non-zero quantity whose sign agrees with the movement type;
      adjustments accept either sign.
    - Quantities never carry more decimal places than configured.
    - Unit cost is finite, non-negative, and rounded exactly once here.
    - Provenance: ref_type and ref_id are mandatory.
    - Reversal movement types are only written with ``reversal_of_id``.

Failure modes:
    - ValidationError for any malformed entry (nothing written).
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from inventory_kernel.db.types import exceeds_precision, round_cost, to_decimal
from inventory_kernel.domain.dtos import LedgerEntryInput
from inventory_kernel.domain.movement import MovementType
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.stock_ledger import StockLedgerEntry
from inventory_kernel.services.base import BaseService

logger = get_logger("services.stock_ledger")


class StockLedgerService(BaseService[StockLedgerEntry]):
    """
    Append-only writer for ``stock_ledger``.

    Guarantees:
        - ``record([])`` is a no-op returning ``[]``.
        - Returned rows carry database ids (flushed) in input order.
    """

    def record(self, entries: Sequence[LedgerEntryInput]) -> list[StockLedgerEntry]:
        if not entries:
            return []

        validated = [self._validate(entry, index) for index, entry in enumerate(entries)]

        now = self.clock.now()
        rows = [
            StockLedgerEntry(
                tenant_id=self.tenant_id,
                product_id=entry.product_id,
                location_id=entry.location_id,
                lot_id=entry.lot_id,
                movement_type=entry.movement_type.value,
                qty_delta_base=quantity,
                unit_cost=unit_cost,
                ref_type=entry.ref_type,
                ref_id=entry.ref_id,
                note=entry.note,
                meta=dict(entry.metadata) if entry.metadata else None,
                actor_id=entry.actor_id or self.context.actor_id,
                txn_ts=entry.txn_ts or now,
                created_at=now,
                reversal_of_id=entry.reversal_of_id,
            )
            for entry, (quantity, unit_cost) in zip(entries, validated)
        ]
        self.session.add_all(rows)
        self.session.flush()

        logger.info(
            "stock_ledger_recorded",
            extra={
                "entry_count": len(rows),
                "first_entry_id": rows[0].id,
                "ref_types": sorted({row.ref_type for row in rows}),
            },
        )
        return rows

    def _validate(
        self, entry: LedgerEntryInput, index: int,
    ) -> tuple[Decimal, Decimal | None]:
        if not isinstance(entry.movement_type, MovementType):
            raise ValidationError(
                f"entry {index}: unknown movement type {entry.movement_type!r}",
                field="movement_type",
            )

        try:
            quantity = to_decimal(entry.quantity, "quantity")
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"entry {index}: {exc}", field="quantity") from exc
        if quantity == 0:
            raise ValidationError(f"entry {index}: quantity must be non-zero", field="quantity")
        if exceeds_precision(quantity, self.settings.quantity_decimal_places):
            raise ValidationError(
                f"entry {index}: quantity {quantity} exceeds "
                f"{self.settings.quantity_decimal_places} decimal places",
                field="quantity",
            )
        if not entry.movement_type.accepts(quantity):
            raise ValidationError(
                f"entry {index}: quantity {quantity} has the wrong sign for "
                f"{entry.movement_type.value}",
                field="quantity",
            )

        unit_cost: Decimal | None = None
        if entry.unit_cost is not None:
            try:
                unit_cost = to_decimal(entry.unit_cost, "unit_cost")
            except (TypeError, ValueError) as exc:
                raise ValidationError(f"entry {index}: {exc}", field="unit_cost") from exc
            if unit_cost < 0:
                raise ValidationError(
                    f"entry {index}: unit cost must be non-negative", field="unit_cost",
                )
            unit_cost = round_cost(unit_cost, self.settings.cost_decimal_places)

        if not entry.ref_type or not entry.ref_id:
            raise ValidationError(
                f"entry {index}: ref_type and ref_id are required", field="ref_type",
            )

        if entry.movement_type.is_reversal and entry.reversal_of_id is None:
            raise ValidationError(
                f"entry {index}: {entry.movement_type.value} requires reversal_of_id",
                field="reversal_of_id",
            )

        return quantity, unit_cost
