from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt


def truncate_ms(dt: datetime) -> datetime:
    """Drop sub-millisecond precision and normalise to UTC."""
    ensure_aware(dt)
    dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def to_millis(dt: datetime) -> int:
    ensure_aware(dt)
    return (dt - EPOCH) // timedelta(milliseconds=1)


def from_millis(ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=ms)


def duration_to_millis(d: timedelta) -> int:
    return d // timedelta(milliseconds=1)


def duration_from_millis(ms: int) -> timedelta:
    return timedelta(milliseconds=ms)


def truncate_duration_ms(d: timedelta) -> timedelta:
    return duration_from_millis(duration_to_millis(d))
