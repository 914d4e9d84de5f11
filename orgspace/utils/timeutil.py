"""Timezone helpers shared by the services."""
from datetime import datetime, timezone
from typing import Callable, Optional


Clock = Callable[[], datetime]


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize naive datetimes (as read back from SQLite) to aware UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def current_time(clock: Optional[Clock]) -> datetime:
    if clock is None:
        return datetime.now(timezone.utc)
    return as_utc(clock())
