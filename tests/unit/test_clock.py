"""Test WallClock, SimClock and the timestamp helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from marketplace_catalog.core.clock import SimClock, WallClock, ensure_utc, tick_after


class TestWallClock:
    def test_now_returns_utc(self):
        now = WallClock().now()
        assert now.tzinfo == timezone.utc

    def test_now_is_recent(self):
        diff = abs((datetime.now(timezone.utc) - WallClock().now()).total_seconds())
        assert diff < 1.0


class TestSimClock:
    def test_default_start(self):
        assert SimClock().now() == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_custom_start(self, sim_clock):
        assert sim_clock.now() == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_advance(self, sim_clock):
        sim_clock.advance(90)
        assert sim_clock.now() == datetime(2024, 6, 1, 0, 1, 30, tzinfo=timezone.utc)

    def test_cannot_go_backwards(self, sim_clock):
        with pytest.raises(ValueError, match="backwards"):
            sim_clock.set_time(datetime(2024, 5, 1, tzinfo=timezone.utc))


class TestTickAfter:
    def test_returns_now_when_later(self, sim_clock):
        previous = sim_clock.now() - timedelta(seconds=1)
        assert tick_after(sim_clock, previous) == sim_clock.now()

    def test_bumps_when_clock_has_not_moved(self, sim_clock):
        previous = sim_clock.now()
        assert tick_after(sim_clock, previous) == previous + timedelta(microseconds=1)

    def test_no_previous(self, sim_clock):
        assert tick_after(sim_clock, None) == sim_clock.now()


class TestEnsureUtc:
    def test_naive_gets_utc(self):
        assert ensure_utc(datetime(2024, 1, 1)).tzinfo == timezone.utc

    def test_aware_and_none_pass_through(self):
        aware = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert ensure_utc(aware) is aware
        assert ensure_utc(None) is None
