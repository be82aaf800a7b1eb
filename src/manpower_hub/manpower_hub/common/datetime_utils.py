from __future__ import annotations

from datetime import datetime, time, timezone


def parse_clock_time(value: str) -> time:
    """Parse HH:MM[:SS] into a time of day."""
    fmt = "%H:%M:%S" if value.count(":") == 2 else "%H:%M"
    return datetime.strptime(value, fmt).time()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def utc_now() -> datetime:
    """Naive UTC timestamp, matching how MySQL DATETIME columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
