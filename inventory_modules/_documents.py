"""
Shared document header (``inventory_modules._documents``).

Responsibility
--------------
The lifecycle vocabulary and header columns every business document
carries: tenant, location, status, notes, and who posted or voided it.

Architecture
------------
Layer: **Modules** -- ORM mixin.  Each module's ``orm.py`` combines
``DocumentHeaderMixin`` with ``TrackedBase``.

Invariants
----------
- ``status`` only moves forward: ``draft -> [review ->] posted -> voided``.
  Transitions happen exclusively through ``transition_status`` in
  ``_posting_helpers`` (one conditional UPDATE).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import UUIDString


class DocumentStatus(str, Enum):
    """Lifecycle of a stock document."""

    DRAFT = "draft"
    REVIEW = "review"
    POSTED = "posted"
    VOIDED = "voided"


class DocumentHeaderMixin:
    """Columns common to every document header."""

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DocumentStatus.DRAFT.value,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    posted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voided_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def document_status(self) -> DocumentStatus:
        return DocumentStatus(self.status)

    @property
    def is_posted(self) -> bool:
        return self.status == DocumentStatus.POSTED.value
