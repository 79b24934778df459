from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    Stored timestamps are naive UTC so comparisons behave the same
    on SQLite (which drops tzinfo) and on server databases.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
