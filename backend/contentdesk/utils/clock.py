"""Monotonic UTC timestamps for record creation.

Creation timestamps double as the list ordering key, so two records created
in the same microsecond would tie. ``utcnow`` never hands out the same instant
twice within a process.
"""

import threading
from datetime import datetime, timedelta, timezone

_lock = threading.Lock()
_last: datetime | None = None


def utcnow() -> datetime:
    global _last
    with _lock:
        now = datetime.now(timezone.utc)
        if _last is not None and now <= _last:
            now = _last + timedelta(microseconds=1)
        _last = now
        return now


def to_micros(value: datetime) -> int:
    """Integer microseconds since the epoch (exact, unlike a float timestamp)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
