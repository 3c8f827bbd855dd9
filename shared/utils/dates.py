"""
Daily bucket utilities
All uniqueness keys (P/E observations, price bars) use the UTC calendar day
"""

from datetime import date, datetime, timezone
from typing import Optional, Union

# Zona horaria de referencia para los buckets diarios
BUCKET_TZ = timezone.utc

SECONDS_PER_DAY = 24 * 60 * 60


def to_daily_bucket(value: Union[int, float, datetime]) -> date:
    """
    Normalize an epoch timestamp (seconds) or datetime to its UTC day

    Naive datetimes are treated as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=BUCKET_TZ)
        return value.astimezone(BUCKET_TZ).date()
    return datetime.fromtimestamp(value, tz=BUCKET_TZ).date()


def today_bucket(now: Optional[datetime] = None) -> date:
    """Daily bucket for the current instant"""
    return to_daily_bucket(now or datetime.now(BUCKET_TZ))


def lookback_window(days: int, now: Optional[datetime] = None) -> tuple[int, int]:
    """
    Epoch-second window [now - days, now]

    Returns:
        (from_epoch, to_epoch)
    """
    current = now or datetime.now(BUCKET_TZ)
    to_epoch = int(current.timestamp())
    return to_epoch - days * SECONDS_PER_DAY, to_epoch
