from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def sortable_timestamp(value: datetime) -> str:
    """Fixed-width UTC timestamp so keys sort chronologically"""
    return value.astimezone(timezone.utc).strftime("%Y%m%d%H%M%S%f")
