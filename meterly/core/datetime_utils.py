"""Datetime utilities for consistent timezone handling across the application."""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

PERIOD_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def utc_now() -> datetime:
    """Get current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Get current UTC time as naive datetime for database operations.

    Returns:
        Current datetime in UTC as naive datetime (no timezone info).

    Note:
        Model columns are TIMESTAMP WITHOUT TIME ZONE and always hold UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert any datetime to naive UTC. Naive input is assumed to be UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def current_period(now: Optional[datetime] = None) -> str:
    """Return the grant period (``YYYY-MM``) containing ``now``."""
    now = to_naive_utc(now) if now else utc_now_naive()
    return f"{now.year:04d}-{now.month:02d}"


def is_valid_period(period: Optional[str]) -> bool:
    """Whether ``period`` is a well-formed ``YYYY-MM`` string."""
    return bool(period) and PERIOD_PATTERN.match(period) is not None


def window_bounds(now: datetime, window_ms: int) -> tuple[datetime, datetime]:
    """Return the fixed window ``[start, end)`` of ``window_ms`` that contains ``now``.

    Windows are aligned to the Unix epoch, so every process computes the same
    boundaries for the same instant.

    Args:
        now: The instant to locate. Naive values are treated as UTC.
        window_ms: Window length in milliseconds.

    Returns:
        Naive UTC start and end of the window.
    """
    aware = now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)
    epoch_ms = int(aware.timestamp() * 1000)
    start_ms = (epoch_ms // window_ms) * window_ms
    start = datetime.fromtimestamp(start_ms / 1000, tz=timezone.utc).replace(tzinfo=None)
    return start, start + timedelta(milliseconds=window_ms)
