from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    return to_utc_naive(dt)


def to_utc_naive(dt: datetime) -> datetime:
    """Naive values are taken as UTC already; aware values are converted."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def utc_date(dt: datetime) -> date:
    """Calendar date of a timestamp in UTC."""
    return to_utc_naive(dt).date()


def period_key(dt: datetime, group_by: str) -> str:
    """
    Bucket label for a timestamp.

    day -> "2024-01-31", week -> "2024-W05" (ISO week), month -> "2024-01"
    """
    d = utc_date(dt)
    if group_by == "day":
        return d.isoformat()
    if group_by == "week":
        year, week, _ = d.isocalendar()
        return f"{year}-W{week:02d}"
    if group_by == "month":
        return f"{d.year}-{d.month:02d}"
    raise ValueError(f"Unknown period grouping: {group_by}")


def date_range(start: date, end: date):
    """Inclusive day-by-day iteration."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
