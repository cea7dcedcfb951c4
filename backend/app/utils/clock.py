"""Timestamps are stored as naive UTC so they compare identically on every backend."""

from datetime import datetime, timedelta, timezone


_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def next_timestamp(previous: datetime | None) -> datetime:
    """Current time, bumped past `previous` so per-record timestamps never go backwards."""
    now = utcnow()
    previous = to_naive_utc(previous)
    if previous is not None and now <= previous:
        return previous + _TICK
    return now
