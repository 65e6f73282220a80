from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Optional

_clock_lock = Lock()
_last_stamp = datetime.min.replace(tzinfo=timezone.utc)


# PUBLIC_INTERFACE
def utc_now() -> datetime:
    """
    Return the current aware UTC time, strictly increasing across calls in this process.

    Two calls landing on the same clock tick get distinct stamps one microsecond
    apart, so ordering by created_at is total and updates always move updated_at.
    """
    global _last_stamp
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if now <= _last_stamp:
            now = _last_stamp + timedelta(microseconds=1)
        _last_stamp = now
        return now


# PUBLIC_INTERFACE
def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Tag a naive datetime as UTC; convert an aware one to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# PUBLIC_INTERFACE
def clean_optional_text(value: Any) -> Optional[str]:
    """Trim a free-text value; None, empty and whitespace-only all become None."""
    if value is None:
        return None
    s = str(value).strip()
    return s or None
