# asocial/utils.py
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    # naive UTC: asyncpg refuses aware values for TIMESTAMP WITHOUT TIME ZONE columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
