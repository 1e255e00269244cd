"""Millisecond-precision UTC timestamps.

Rows are stamped with naive UTC datetimes truncated to whole milliseconds so
that the epoch-millisecond value exposed in pagination cursors maps back to
exactly the stored value.
"""
from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1)


def utcnow_ms() -> datetime:
    """Current naive UTC time truncated to milliseconds"""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(ms: int) -> datetime:
    """Inverse of :func:`to_epoch_ms`. Raises OverflowError outside datetime's range."""
    return _EPOCH + timedelta(milliseconds=ms)
