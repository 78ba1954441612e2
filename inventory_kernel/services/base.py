"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor: the caller's SQLAlchemy ``Session``, the tenant
    context, the clock and the kernel settings.

Architecture position:
    Kernel > Services.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's transaction
      and never commit or roll back.  The caller (an orchestrator,
      TransactionRunner or a test) owns commit/rollback.
    - Tenant scoping: every query and every row a service writes carries
      ``context.tenant_id``.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import TenantContext
from inventory_kernel.domain.settings import KernelSettings
from inventory_kernel.logging_config import LogContext

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Read-only queries belong in ``inventory_kernel/selectors/``.
    """

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
        self.settings = settings or KernelSettings()

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

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name
