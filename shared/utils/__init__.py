"""
Utility modules
"""

from .logger import get_logger, configure_logging
from .db_client import DatabaseClient
from .rate_limiter import RateLimiter
from .dates import to_daily_bucket, today_bucket, lookback_window

__all__ = [
    "get_logger",
    "configure_logging",
    "DatabaseClient",
    "RateLimiter",
    "to_daily_bucket",
    "today_bucket",
    "lookback_window",
]
