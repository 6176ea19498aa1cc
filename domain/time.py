"""
Domain time utilities (pure).

Every timestamp in the marketplace (bookings, ledger entries, grants,
proposals, job assignments) is a timezone-aware UTC datetime. Entities call
`require_utc_timestamp` in `__post_init__`; services read the time from an
injected clock that defaults to `utc_now`.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def require_utc_timestamp(name: str, value: datetime) -> None:
    """Raise ValueError unless `value` is timezone-aware with offset 0."""

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def to_iso_utc(value: datetime, *, name: str) -> str:
    """ISO-8601 text for a UTC timestamp, e.g. '2025-06-10T12:00:00+00:00'."""

    require_utc_timestamp(name, value)
    return value.astimezone(timezone.utc).isoformat()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["require_utc_timestamp", "to_iso_utc", "utc_now"]
