"""
LotRegistry -- find-or-create identity for perishable lots.

Responsibility:
    Resolves a (product, location, lot number) to a lot id, creating the lot
    on first sight.  Two transactions presenting the same new lot number at
    the same time both get the same id and neither sees a duplicate-key
    error.

Architecture position:
    Kernel > Services.

Invariants enforced:
    - Uniqueness of (tenant, product, location, lot_no), backed by the
      uq_lots_natural_key constraint.
    - Race-safe create: INSERT ... ON CONFLICT DO NOTHING on PostgreSQL and
      SQLite; a savepoint with IntegrityError recovery elsewhere.  Either
      way the row is re-read after the insert attempt.

Failure modes:
    - ValidationError for an empty lot number.
    - LotNotFoundError from get()/require_for_key().
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from inventory_kernel.domain.dtos import LotInput
from inventory_kernel.exceptions import LotNotFoundError, ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.lot import Lot
from inventory_kernel.services.base import BaseService

logger = get_logger("services.lot_registry")

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class LotRegistry(BaseService[Lot]):
    """Lot lookup and race-safe creation."""

    def find(self, product_id: UUID, location_id: UUID, lot_no: str) -> Lot | None:
        return self.session.scalar(
            select(Lot).where(
                Lot.tenant_id == self.tenant_id,
                Lot.product_id == product_id,
                Lot.location_id == location_id,
                Lot.lot_no == lot_no,
            )
        )

    def find_or_create(self, lot: LotInput) -> UUID:
        """
        Id of the lot with this natural key, creating it if absent.

        Attributes (expiry, dates, notes) are only written on creation; an
        existing lot keeps the values it was created with.
        """
        lot_no = (lot.lot_no or "").strip()
        if not lot_no:
            raise ValidationError("lot number is required", field="lot_no")

        existing = self.find(lot.product_id, lot.location_id, lot_no)
        if existing is not None:
            return existing.id

        values = {
            "id": uuid4(),
            "tenant_id": self.tenant_id,
            "product_id": lot.product_id,
            "location_id": lot.location_id,
            "lot_no": lot_no,
            "expiry_date": lot.expiry_date,
            "manufacture_date": lot.manufacture_date,
            "received_date": lot.received_date,
            "notes": lot.notes,
            "metadata": dict(lot.metadata) if lot.metadata else None,
            "created_at": self.clock.now(),
        }

        insert_fn = _UPSERT_INSERTS.get(self.dialect_name)
        if insert_fn is not None:
            stmt = insert_fn(Lot.__table__).values(values).on_conflict_do_nothing(
                index_elements=["tenant_id", "product_id", "location_id", "lot_no"],
            )
            self.session.execute(stmt)
        else:
            self._insert_with_savepoint(values)

        created = self.find(lot.product_id, lot.location_id, lot_no)
        if created is None:
            raise LotNotFoundError(lot_no, str(lot.product_id), str(lot.location_id))

        if created.id == values["id"]:
            logger.info(
                "lot_created",
                extra={
                    "lot_id": created.id,
                    "lot_no": lot_no,
                    "product_id": lot.product_id,
                    "location_id": lot.location_id,
                    "expiry_date": lot.expiry_date,
                },
            )
        else:
            logger.info(
                "lot_create_race_resolved",
                extra={"lot_id": created.id, "lot_no": lot_no},
            )
        return created.id

    def get(self, lot_id: UUID) -> Lot:
        lot = self.session.get(Lot, lot_id)
        if lot is None or lot.tenant_id != self.tenant_id:
            raise LotNotFoundError(str(lot_id))
        return lot

    def require_for_key(self, lot_id: UUID, product_id: UUID, location_id: UUID) -> Lot:
        """The lot, provided it belongs to this product and location."""
        lot = self.get(lot_id)
        if lot.product_id != product_id or lot.location_id != location_id:
            raise LotNotFoundError(str(lot_id), str(product_id), str(location_id))
        return lot

    def _insert_with_savepoint(self, values: dict) -> None:
        try:
            with self.session.begin_nested():
                self.session.execute(Lot.__table__.insert().values(values))
        except IntegrityError:
            logger.info(
                "lot_create_conflict",
                extra={"lot_no": values["lot_no"], "product_id": values["product_id"]},
            )
