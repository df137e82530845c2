from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterator


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value[:10], "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z'."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def parse_clock_time(value: str) -> time:
    """Parse HH:MM or HH:MM:SS into time."""
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time string: {value!r}")
    seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
    return time(hour=int(parts[0]), minute=int(parts[1]), second=seconds)


def today_local() -> date:
    """Current local date.

    Note: Wrapped so tests can patch/inject a fixed clock.
    """
    return datetime.now().date()


def month_start(value: date) -> date:
    return value.replace(day=1)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
