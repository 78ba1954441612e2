"""
Module: inventory_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/ and models/.
    MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - DTO return convention: selectors return frozen dataclasses or Decimals,
      not ORM instances.
    - Exact sums: quantity and value totals are Decimal on every backend.
      PostgreSQL sums NUMERIC exactly; SQLite sums as floating point, so
      there the rows are summed in Python.
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Iterable
from decimal import Decimal
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base
from inventory_kernel.db.types import ZERO, from_db_number

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session and the tenant id from the caller and
        scope every query to that tenant.
    """

    def __init__(self, session: Session, tenant_id: UUID):
        self.session = session
        self.tenant_id = tenant_id

    @property
    def exact_sql_sum(self) -> bool:
        return self.session.get_bind().dialect.name == "postgresql"

    def sum_decimal(self, expression: Any, *criteria: Any) -> Decimal:
        """Exact sum of ``expression`` over rows matching ``criteria``."""
        if self.exact_sql_sum:
            total = self.session.scalar(select(func.sum(expression)).where(*criteria))
            return from_db_number(total) if total is not None else ZERO
        return self._python_sum(self.session.scalars(select(expression).where(*criteria)))

    def sum_decimal_by(self, key: Any, expression: Any, *criteria: Any) -> dict[Any, Decimal]:
        """Exact sums of ``expression`` grouped by the single column ``key``."""
        if self.exact_sql_sum:
            rows = self.session.execute(
                select(key, func.sum(expression)).where(*criteria).group_by(key)
            )
            return {k: from_db_number(total) for k, total in rows}
        totals: dict[Any, Decimal] = {}
        for k, value in self.session.execute(select(key, expression).where(*criteria)):
            totals[k] = totals.get(k, ZERO) + from_db_number(value)
        return totals

    @staticmethod
    def _python_sum(values: Iterable[Any]) -> Decimal:
        return sum((from_db_number(v) for v in values if v is not None), ZERO)
