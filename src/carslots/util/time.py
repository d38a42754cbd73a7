from __future__ import annotations

from datetime import datetime, timedelta, timezone


def now_utc() -> datetime:
    """Return current time as tz-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_iso(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp string into tz-aware UTC datetime.

    Accepts strings like:
      - 2025-01-01T12:34:56Z
      - 2025-01-01T12:34:56.123Z
      - 2025-01-01T12:34:56+03:00

    Naive timestamps are interpreted as UTC (older index files were written
    without an offset).
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("ISO-8601 value must be a non-empty string")

    s = value.strip()
    # Python's fromisoformat doesn't accept 'Z' before 3.11, so normalize.
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)  # raises ValueError if invalid
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Convert tz-aware datetime to ISO-8601 (UTC, with 'Z')."""
    dt = normalize_dt(dt).astimezone(timezone.utc)
    s = dt.isoformat(timespec="milliseconds")
    return s.replace("+00:00", "Z")


def now_iso() -> str:
    return to_iso(now_utc())


def normalize_dt(dt: datetime) -> datetime:
    """Ensure datetime is tz-aware. Raises if naive."""
    if not isinstance(dt, datetime):
        raise TypeError("dt must be a datetime")
    if dt.tzinfo is None:
        raise ValueError("naive datetime is not allowed; timezone-aware required")
    return dt


def age_seconds(timestamp: str, *, now: datetime | None = None) -> float:
    """Seconds elapsed since an ISO-8601 timestamp (negative if in the future)."""
    reference = now or now_utc()
    return (reference - parse_iso(timestamp)).total_seconds()


def is_older_than(timestamp: str, seconds: float, *, now: datetime | None = None) -> bool:
    """
    Return True if timestamp is more than `seconds` old.

    Unparseable timestamps count as old so that the caller rebuilds.
    """
    try:
        return age_seconds(timestamp, now=now) > seconds
    except ValueError:
        return True


def expires_at(seconds: float, *, now: datetime | None = None) -> str:
    reference = now or now_utc()
    return to_iso(reference + timedelta(seconds=seconds))
