"""
Shared helpers for document posting flows.

Used by inventory_modules/*/service.py so that every document goes through
the same guarded sequence:

    1. transition_status: one conditional UPDATE ... WHERE status IN (...)
    2. resolve/create lots
    3. MovementPoster.post_batch (FIFO draws, ledger batch, layers)
    4. return a PostingOutcome

Void runs the same guard towards ``voided`` and posts the reversal of every
ledger entry of the document through ReversalService.

Architecture: Modules layer.  Imports from inventory_kernel and
inventory_config only.  Nothing here commits; the caller's transaction
(usually a TransactionRunner) owns commit and rollback.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from inventory_config import get_active_settings
from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import PostedMovement, ReversalOptions, TenantContext
from inventory_kernel.domain.settings import KernelSettings
from inventory_kernel.exceptions import (
    AlreadyPostedError,
    DocumentNotFoundError,
    NotPostedError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.selectors.stock_selector import StockSelector
from inventory_kernel.services.lot_registry import LotRegistry
from inventory_kernel.services.movement_poster import MovementPoster
from inventory_kernel.services.reversal_builder import ReversalService
from inventory_modules._documents import DocumentStatus

logger = get_logger("modules.posting")

DocumentT = TypeVar("DocumentT")


@dataclass(frozen=True)
class PostingOutcome:
    """What a post or void did to the ledger."""

    document_type: str
    document_id: UUID
    status: DocumentStatus
    movements: tuple[PostedMovement, ...]

    @property
    def total_value(self) -> Decimal:
        return sum((m.value for m in self.movements), ZERO)

    @property
    def ledger_entry_ids(self) -> tuple[int, ...]:
        return tuple(m.ledger_entry_id for m in self.movements)


def split_posted(
    posted: Sequence[PostedMovement], quantities: Sequence[Decimal],
) -> list[list[PostedMovement]]:
    """
    Regroup ``post_batch`` output per requested movement.

    ``post_batch`` returns rows in movement order, one or more per movement
    (one per lot drawn), whose quantities add up to the requested quantity.
    """
    groups: list[list[PostedMovement]] = []
    position = 0
    for quantity in quantities:
        group: list[PostedMovement] = []
        total = ZERO
        while total != quantity:
            if position >= len(posted):
                raise ValueError("posted rows do not add up to the requested quantities")
            row = posted[position]
            position += 1
            group.append(row)
            total += row.quantity
        groups.append(group)
    return groups


def load_document(
    session: Session,
    model: type[DocumentT],
    *,
    tenant_id: UUID,
    document_id: UUID,
    document_type: str,
) -> DocumentT:
    """The tenant's document, freshly read.  DocumentNotFoundError otherwise."""
    document = session.get(model, document_id, populate_existing=True)
    if document is None or document.tenant_id != tenant_id:
        raise DocumentNotFoundError(document_type, str(document_id))
    return document


def require_status(
    document: Any, document_type: str, allowed: Iterable[DocumentStatus],
) -> None:
    """Read-side check for edits; posting itself relies on transition_status."""
    allowed_values = {s.value for s in allowed}
    if document.status not in allowed_values:
        raise AlreadyPostedError(document_type, str(document.id), document.status)


def transition_status(
    session: Session,
    model: type,
    *,
    tenant_id: UUID,
    document_id: UUID,
    document_type: str,
    from_statuses: Sequence[DocumentStatus],
    to_status: DocumentStatus,
    values: dict[str, Any] | None = None,
) -> None:
    """
    Move a document between lifecycle states with one conditional UPDATE.

    Two concurrent posts of the same document cannot both succeed: the
    second UPDATE matches zero rows once the first has committed.

    Raises:
        DocumentNotFoundError: no such document for the tenant.
        NotPostedError: a void found the document not posted.
        AlreadyPostedError: any other transition found an unexpected status.
    """
    stmt = (
        update(model)
        .where(
            model.id == document_id,
            model.tenant_id == tenant_id,
            model.status.in_([s.value for s in from_statuses]),
        )
        .values(status=to_status.value, **(values or {}))
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount == 1:
        logger.info(
            "document_status_changed",
            extra={
                "document_type": document_type,
                "document_id": document_id,
                "to_status": to_status.value,
            },
        )
        return

    current = session.scalar(
        select(model.status).where(model.id == document_id, model.tenant_id == tenant_id)
    )
    if current is None:
        raise DocumentNotFoundError(document_type, str(document_id))
    logger.warning(
        "document_transition_rejected",
        extra={
            "document_type": document_type,
            "document_id": document_id,
            "current_status": current,
            "to_status": to_status.value,
        },
    )
    if to_status is DocumentStatus.VOIDED:
        raise NotPostedError(document_type, str(document_id), current)
    raise AlreadyPostedError(document_type, str(document_id), current)


class DocumentService:
    """
    Common constructor and plumbing for the document orchestrators.

    Subclasses set ``document_type`` (also used as the ledger ``ref_type``)
    and ``model``.
    """

    document_type: str = ""
    model: type

    def __init__(
        self,
        session: Session,
        context: TenantContext,
        clock: Clock | None = None,
        settings: KernelSettings | None = None,
    ):
        self.session = session
        self.context = context
        self.clock = clock or SystemClock()
        self.settings = settings or get_active_settings()
        self.poster = MovementPoster(session, context, self.clock, self.settings)
        self.lots = LotRegistry(session, context, self.clock, self.settings)
        self.stock = StockSelector(session, context.tenant_id)

    @property
    def tenant_id(self) -> UUID:
        return self.context.tenant_id

    def log_scope(self, **fields):
        """Bind the caller's tenant, actor and correlation id (plus ``fields``) to log lines."""
        return LogContext.bind(
            tenant_id=self.context.tenant_id,
            actor_id=self.context.actor_id,
            correlation_id=self.context.correlation_id,
            **fields,
        )

    def get(self, document_id: UUID):
        return load_document(
            self.session,
            self.model,
            tenant_id=self.tenant_id,
            document_id=document_id,
            document_type=self.document_type,
        )

    def _claim(
        self,
        document_id: UUID,
        from_statuses: Sequence[DocumentStatus] = (DocumentStatus.DRAFT,),
        to_status: DocumentStatus = DocumentStatus.POSTED,
    ):
        """Guarded transition; returns the refreshed document."""
        values: dict[str, Any] = {"updated_by_id": self.context.actor_id}
        if to_status is DocumentStatus.POSTED:
            values.update(posted_at=self.clock.now(), posted_by_id=self.context.actor_id)
        transition_status(
            self.session,
            self.model,
            tenant_id=self.tenant_id,
            document_id=document_id,
            document_type=self.document_type,
            from_statuses=from_statuses,
            to_status=to_status,
            values=values,
        )
        return self.get(document_id)

    def _outcome(
        self, document_id: UUID, status: DocumentStatus, movements: Iterable[PostedMovement],
    ) -> PostingOutcome:
        outcome = PostingOutcome(
            document_type=self.document_type,
            document_id=document_id,
            status=status,
            movements=tuple(movements),
        )
        logger.info(
            "document_posting_completed",
            extra={
                "document_type": self.document_type,
                "document_id": document_id,
                "status": status.value,
                "entry_count": len(outcome.movements),
                "total_value": outcome.total_value,
            },
        )
        return outcome


class ReversibleDocumentService(DocumentService):
    """A document whose posting can be voided by exact reversal."""

    def void(self, document_id: UUID, reason: str | None = None) -> PostingOutcome:
        """Reverse every ledger entry the document posted and mark it voided."""
        with self.log_scope(ref_type=self.document_type, ref_id=str(document_id)):
            transition_status(
                self.session,
                self.model,
                tenant_id=self.tenant_id,
                document_id=document_id,
                document_type=self.document_type,
                from_statuses=(DocumentStatus.POSTED,),
                to_status=DocumentStatus.VOIDED,
                values={
                    "voided_at": self.clock.now(),
                    "voided_by_id": self.context.actor_id,
                    "void_reason": reason,
                    "updated_by_id": self.context.actor_id,
                },
            )
            reversals = ReversalService(
                self.session, self.context, self.clock, self.settings,
            ).reverse_reference(
                self.document_type,
                str(document_id),
                ReversalOptions(
                    actor_id=self.context.actor_id,
                    note_prefix=f"Void {self.document_type}: ",
                ),
            )
            return self._outcome(document_id, DocumentStatus.VOIDED, reversals)
