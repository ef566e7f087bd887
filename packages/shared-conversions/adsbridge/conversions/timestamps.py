"""Conversion timestamp encoding.

Google Ads expects ``conversionDateTime`` as ``yyyy-mm-dd hh:mm:ss+|-hh:mm``.
Timestamps produced here are always UTC.
"""

from __future__ import annotations

import time
from collections.abc import Callable

MILLIS_PER_SECOND = 1000
SECONDS_PER_DAY = 24 * 60 * 60

_MONTH_DAYS = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)
_LEAP_MONTH_DAYS = (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def is_leap_year(year: int) -> bool:
    """Return True for years divisible by 4.

    Century years are not special-cased; the rule is exact for 1901-2099.
    """
    return year % 4 == 0


def encode_timestamp(epoch_millis: int) -> str:
    """
    Encode epoch milliseconds as ``YYYY-MM-DD HH:MM:SS+00:00``.

    Args:
        epoch_millis: Non-negative milliseconds since 1970-01-01 00:00:00 UTC.

    Returns:
        UTC civil timestamp string.

    Raises:
        ValueError: If epoch_millis is negative.

    Example:
        >>> encode_timestamp(0)
        '1970-01-01 00:00:00+00:00'
        >>> encode_timestamp(1709251200000)
        '2024-03-01 00:00:00+00:00'
    """
    if epoch_millis < 0:
        raise ValueError(f"epoch_millis must be non-negative, got {epoch_millis}")

    total_seconds = int(epoch_millis) // MILLIS_PER_SECOND
    days, seconds_of_day = divmod(total_seconds, SECONDS_PER_DAY)
    hour, remainder = divmod(seconds_of_day, 3600)
    minute, second = divmod(remainder, 60)

    year = 1970
    while True:
        year_days = 366 if is_leap_year(year) else 365
        if days < year_days:
            break
        days -= year_days
        year += 1

    month_days = _LEAP_MONTH_DAYS if is_leap_year(year) else _MONTH_DAYS
    month = 1
    for length in month_days:
        if days < length:
            break
        days -= length
        month += 1

    return (
        f"{year:04d}-{month:02d}-{days + 1:02d} "
        f"{hour:02d}:{minute:02d}:{second:02d}+00:00"
    )


def now_millis() -> int:
    """Current time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def current_timestamp(clock: Callable[[], int] = now_millis) -> str:
    """Encode the current instant reported by ``clock``."""
    return encode_timestamp(clock())
