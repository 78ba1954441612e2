"""
TransactionRunner -- caller-side unit of work with bounded retry.

Responsibility:
    Runs one posting operation in a fresh session, commits on success and
    rolls back on any error.  Lock timeouts, deadlocks and serialization
    failures (ConcurrencyConflictError) are retried with exponential backoff
    up to ``RetryPolicy.max_attempts``; every other error propagates
    unchanged after rollback.

Architecture position:
    Kernel > Services.  Used by API adapters, batch jobs and tests.  Kernel
    services themselves never commit; this is the layer that does.

Invariants enforced:
    - Atomicity: a posting either commits as a whole or leaves no trace.
    - Bounded retry: at most ``max_attempts`` executions.
    - Only ConcurrencyConflictError (or a DB error classified as one) is
      retried.  Validation and stock errors are never retried.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from inventory_kernel.domain.settings import RetryPolicy
from inventory_kernel.exceptions import ConcurrencyConflictError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.retry")

T = TypeVar("T")

# serialization_failure, deadlock_detected, lock_not_available
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_concurrency_conflict(exc: DBAPIError) -> bool:
    """True for lock-wait, deadlock and serialization failures."""
    if _sqlstate(exc) in _RETRYABLE_SQLSTATES:
        return True
    return "database is locked" in str(exc.orig).lower()


def describe_db_error(exc: DBAPIError) -> str:
    state = _sqlstate(exc)
    message = str(exc.orig).strip()
    first_line = message.splitlines()[0] if message else type(exc.orig).__name__
    return f"{state}: {first_line}" if state else first_line


class TransactionRunner:
    """
    Execute ``operation(session)`` as one committed transaction.

    Contract:
        ``session_factory`` returns a new Session per call.  ``operation``
        must be safe to re-run from scratch: it receives a fresh session on
        every attempt.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session_factory = session_factory
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    def run(self, operation: Callable[[Session], T], *, name: str = "transaction") -> T:
        attempt = 0
        while True:
            attempt += 1
            session = self._session_factory()
            try:
                result = operation(session)
                session.commit()
            except ConcurrencyConflictError as exc:
                session.rollback()
                conflict = exc
            except DBAPIError as exc:
                session.rollback()
                if not is_concurrency_conflict(exc):
                    raise
                conflict = ConcurrencyConflictError(name, describe_db_error(exc))
                conflict.__cause__ = exc
            except Exception:
                session.rollback()
                raise
            else:
                if attempt > 1:
                    logger.info(
                        "transaction_succeeded_after_retry",
                        extra={"operation": name, "attempts": attempt},
                    )
                return result
            finally:
                session.close()

            if attempt >= self._policy.max_attempts:
                logger.error(
                    "transaction_retries_exhausted",
                    extra={
                        "operation": name,
                        "attempts": attempt,
                        "reason": conflict.reason,
                    },
                )
                raise conflict

            delay = self._policy.delay_for(attempt)
            logger.warning(
                "transaction_retry",
                extra={
                    "operation": name,
                    "attempt": attempt,
                    "max_attempts": self._policy.max_attempts,
                    "delay_seconds": delay,
                    "reason": conflict.reason,
                },
            )
            self._sleep(delay)
