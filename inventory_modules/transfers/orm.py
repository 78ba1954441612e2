"""
Module: inventory_modules.transfers.orm
Responsibility: SQLAlchemy persistence for inter-location transfers.
Architecture position: Modules > Transfers > ORM.  ``location_id`` of the
    header is the source; ``destination_location_id`` receives the goods.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDBase, UUIDString
from inventory_modules._documents import DocumentHeaderMixin


class TransferModel(DocumentHeaderMixin, TrackedBase):
    __tablename__ = "transfers"

    __table_args__ = (
        Index("idx_transfers_status", "tenant_id", "status"),
        CheckConstraint(
            "location_id <> destination_location_id",
            name="ck_transfers_distinct_locations",
        ),
    )

    destination_location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    lines: Mapped[list[TransferLineModel]] = relationship(
        back_populates="transfer",
        cascade="all, delete-orphan",
        order_by="TransferLineModel.line_no",
    )


class TransferLineModel(UUIDBase):
    __tablename__ = "transfer_lines"

    transfer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("transfers.id"), nullable=False, index=True,
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    lot_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("lots.id"), nullable=True,
    )
    # FIFO value moved, filled in at posting
    cost_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    transfer: Mapped[TransferModel] = relationship(back_populates="lines")
