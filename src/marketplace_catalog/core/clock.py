"""Clock abstraction for entity and audit timestamps.

WallClock: real wall-clock time
SimClock: deterministic simulated time (tests, replays)

Stores and the audit trail never call datetime.now() directly; they are
handed a clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol

_TICK = timedelta(microseconds=1)


class IClock(Protocol):
    """Clock interface used by all time-dependent code."""

    def now(self) -> datetime:
        """Current time as timezone-aware UTC datetime."""
        ...


class WallClock:
    """Real wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class SimClock:
    """Simulated clock.

    Time advances only when explicitly set or advanced.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._time = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._time

    def set_time(self, t: datetime) -> None:
        """Move time. Must be monotonically increasing."""
        if t < self._time:
            raise ValueError(
                f"SimClock cannot go backwards: {t} < {self._time}"
            )
        self._time = t

    def advance(self, seconds: float) -> None:
        self.set_time(self._time + timedelta(seconds=seconds))


def tick_after(clock: IClock, previous: datetime | None) -> datetime:
    """Return ``clock.now()``, bumped to be strictly later than *previous*."""
    now = clock.now()
    if previous is not None and now <= previous:
        return previous + _TICK
    return now


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from storage."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
