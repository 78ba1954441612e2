"""
Clock -- injectable time source.

Responsibility:
    Services never call ``datetime.now()`` directly.  Ledger transaction
    timestamps and layer creation timestamps (which drive FIFO order) come
    from the Clock handed to the service, as do the received and
    manufacture dates stamped on new lots.

Architecture position:
    Kernel > Domain.  SystemClock is the only I/O boundary for time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware UTC ``datetime``.
        - ``business_date()`` is the UTC calendar date of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def business_date(self) -> date:
        """Date recorded on documents and lots created now."""
        return self.now().astimezone(timezone.utc).date()


class SystemClock(Clock):
    """Production clock returning actual UTC system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Each ``tick()`` moves time forward by one second, so layers created
    after a tick sort strictly after earlier ones in FIFO order.

    Guarantees:
        - ``now()`` returns the same value until ``advance()``, ``tick()`` or
          ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._start = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self._offset = timedelta(0)

    def now(self) -> datetime:
        return self._start + self._offset

    def set_time(self, time: datetime) -> None:
        self._start = time
        self._offset = timedelta(0)

    def advance(self, seconds: int = 1) -> None:
        self._offset += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Advance by one second and return the new time."""
        self.advance(1)
        return self.now()
