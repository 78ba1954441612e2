"""
Tests for TransactionRunner - commit/rollback and bounded retry.

Uses a recording fake session; the retry loop never touches the database
itself.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from inventory_kernel.domain.settings import RetryPolicy
from inventory_kernel.exceptions import ConcurrencyConflictError, InsufficientStockError
from inventory_kernel.services.retry_service import TransactionRunner, is_concurrency_conflict


class FakeSession:
    def __init__(self, log: list[str]):
        self._log = log

    def commit(self):
        self._log.append("commit")

    def rollback(self):
        self._log.append("rollback")

    def close(self):
        self._log.append("close")


class FakePgError(Exception):
    def __init__(self, pgcode: str, message: str = "could not obtain lock"):
        super().__init__(message)
        self.pgcode = pgcode


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def runner(calls, sleeps) -> TransactionRunner:
    return TransactionRunner(
        lambda: FakeSession(calls),
        RetryPolicy(
            max_attempts=3,
            base_delay_seconds=Decimal("0.1"),
            max_delay_seconds=Decimal("1"),
        ),
        sleep=sleeps.append,
    )


class TestCommit:

    def test_success_commits_once(self, runner, calls, sleeps):
        result = runner.run(lambda s: "posted", name="post")

        assert result == "posted"
        assert calls == ["commit", "close"]
        assert sleeps == []

    def test_business_error_rolls_back_without_retry(self, runner, calls, sleeps):
        def operation(session):
            raise InsufficientStockError("p", "l", Decimal("2"), Decimal("1"))

        with pytest.raises(InsufficientStockError):
            runner.run(operation)

        assert calls == ["rollback", "close"]
        assert sleeps == []


class TestRetry:

    def test_conflict_retried_then_succeeds(self, runner, calls, sleeps, captured_logs):
        attempts = []

        def operation(session):
            attempts.append(session)
            if len(attempts) < 3:
                raise ConcurrencyConflictError("post", "lock timeout")
            return "ok"

        assert runner.run(operation, name="post") == "ok"

        assert len(attempts) == 3
        assert len({id(s) for s in attempts}) == 3
        assert sleeps == [pytest.approx(0.1), pytest.approx(0.2)]
        assert calls == ["rollback", "close", "rollback", "close", "commit", "close"]
        messages = [r["message"] for r in captured_logs()]
        assert messages.count("transaction_retry") == 2
        assert "transaction_succeeded_after_retry" in messages

    def test_retries_exhausted(self, runner, sleeps, captured_logs):
        def operation(session):
            raise ConcurrencyConflictError("post", "deadlock")

        with pytest.raises(ConcurrencyConflictError):
            runner.run(operation, name="post")

        assert len(sleeps) == 2
        assert any(r["message"] == "transaction_retries_exhausted" for r in captured_logs())

    def test_lock_timeout_db_error_is_retried(self, runner, sleeps):
        attempts = []

        def operation(session):
            attempts.append(1)
            if len(attempts) == 1:
                raise OperationalError("SELECT ...", {}, FakePgError("55P03"))
            return "ok"

        assert runner.run(operation) == "ok"
        assert len(sleeps) == 1

    def test_other_db_error_propagates(self, runner, calls, sleeps):
        def operation(session):
            raise OperationalError("SELECT ...", {}, FakePgError("42P01", "no such table"))

        with pytest.raises(OperationalError):
            runner.run(operation)

        assert sleeps == []
        assert calls == ["rollback", "close"]


class TestClassification:

    @pytest.mark.parametrize("code", ["40001", "40P01", "55P03"])
    def test_retryable_sqlstates(self, code):
        assert is_concurrency_conflict(OperationalError("x", {}, FakePgError(code)))

    def test_sqlite_busy(self):
        exc = OperationalError("x", {}, Exception("database is locked"))
        assert is_concurrency_conflict(exc)

    def test_constraint_violation_is_not_a_conflict(self):
        assert not is_concurrency_conflict(OperationalError("x", {}, FakePgError("23505")))
