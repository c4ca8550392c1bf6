"""
Clock capability for "today" comparisons.

Maintenance locking and licence checks compare against the current
server-local day. Endpoints receive the clock through FastAPI dependency
injection so tests can pin or advance time.
"""

from datetime import datetime, timedelta


class Clock:
    """Wall clock returning naive server-local datetimes."""

    def now(self) -> datetime:
        return datetime.now()


system_clock = Clock()


def get_clock() -> Clock:
    """FastAPI dependency for the active clock."""
    return system_clock


def to_local_naive(value: datetime) -> datetime:
    """Normalize an aware datetime to naive server-local time."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def start_of_day(value: datetime) -> datetime:
    return to_local_naive(value).replace(hour=0, minute=0, second=0, microsecond=0)


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Return the [start, end) window of the calendar day containing `now`."""
    start = start_of_day(now)
    return start, start + timedelta(days=1)
