from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
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

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a calendar date.

    Accepts "YYYY-MM-DD" and full ISO datetimes (the date part is kept,
    which is what browsers send for all-day pickers).
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    if len(s) == 10:
        return date.fromisoformat(s)
    dt = parse_iso_datetime(s)
    return dt.date() if dt else None


def parse_time_of_day(value: Optional[str]) -> Optional[time]:
    """
    Parse "HH:MM" or "HH:MM:SS" into a naive time.

    Times of day are wall-clock times at the venue, so a UTC offset is
    rejected rather than silently dropped.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    t = time.fromisoformat(s)
    if t.tzinfo is not None:
        raise ValueError("time of day must not carry a UTC offset")
    return t


def combine_start(day: date, at: Optional[time]) -> datetime:
    """A missing start time means the start of the day."""
    return datetime.combine(day, at or time.min)


def combine_end(day: date, at: Optional[time]) -> datetime:
    """A missing end time means the booking runs to the end of the day."""
    if at is None:
        return datetime.combine(day + timedelta(days=1), time.min)
    return datetime.combine(day, at)


def booking_window(
    start_date: date,
    start_time: Optional[time],
    end_date: date,
    end_time: Optional[time],
) -> tuple[datetime, datetime]:
    """Combine the separate date and time-of-day fields into a [start, end) pair."""
    return combine_start(start_date, start_time), combine_end(end_date, end_time)


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


def to_iso_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def to_hhmm(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value else None
