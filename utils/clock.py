"""Time source and on-disk encoding of timestamps and intervals.

Timestamps are stored as float seconds since the Unix epoch and intervals as
float seconds. Both survive the round trip with microsecond precision, which
is all ``datetime`` carries anyway.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def system_now() -> datetime:
    return datetime.now(timezone.utc)


class FixedClock:
    """A clock that only moves when told to. Meant for tests and replays."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or system_now()

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0.0, **kwargs) -> datetime:
        self.current = self.current + timedelta(seconds=seconds, **kwargs)
        return self.current


def time_to_db(value: datetime) -> float:
    if value.tzinfo is None:
        raise ValueError("Naive datetimes are ambiguous, attach a timezone")
    stamp = value.timestamp()
    if stamp <= 0.0:
        raise ValueError(f"Timestamp {value.isoformat()} is not after the Unix epoch")
    return stamp


def db_to_time(value: float) -> datetime:
    if value <= 0.0:
        raise ValueError(f"Unexpected non-positive timestamp {value}")
    return datetime.fromtimestamp(value, tz=timezone.utc)


def dur_to_db(value: timedelta) -> float:
    return value.total_seconds()


def db_to_dur(value: float) -> timedelta:
    return timedelta(seconds=value)


_UNITS = (
    ("seconds", 60.0),
    ("minutes", 60.0),
    ("hours", 24.0),
    ("days", 30.0),
    ("months", 12.0),
    ("years", float("inf")),
)


def humanize_interval(interval: timedelta) -> str:
    """Render an interval in the largest unit that keeps it under one step, e.g. '2.5 hours'."""
    value = interval.total_seconds()
    for name, step in _UNITS:
        if value < step:
            return f"{value:.1f} {name}"
        value /= step
    raise ValueError(f"Interval out of range: {interval}")
