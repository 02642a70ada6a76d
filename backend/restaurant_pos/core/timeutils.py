"""Clock helpers shared by the engines."""

from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes read back from the database as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_today(now: datetime, tz_name: str) -> date:
    """The calendar date at the restaurant for the instant ``now``."""
    return as_utc(now).astimezone(ZoneInfo(tz_name)).date()
