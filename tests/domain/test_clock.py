"""Tests for the injectable clocks."""

from datetime import date, datetime, timedelta, timezone

from inventory_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_time_is_frozen_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()

    def test_tick_advances_one_second(self):
        clock = DeterministicClock()
        before = clock.now()

        after = clock.tick()

        assert after - before == timedelta(seconds=1)
        assert clock.now() == after

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(30)
        target = datetime(2025, 6, 1, tzinfo=timezone.utc)

        clock.set_time(target)

        assert clock.now() == target


class TestBusinessDate:

    def test_is_utc_calendar_date(self):
        clock = DeterministicClock(datetime(2025, 3, 31, 23, 30, tzinfo=timezone(timedelta(hours=-2))))
        assert clock.business_date() == date(2025, 4, 1)

    def test_system_clock_is_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None
