"""
Date and time utilities for IONEX records.

IONEX epochs are six integers (year, month, day, hour, minute, second) in
UTC. Epochs are handled as naive ``datetime`` objects understood as UTC.
"""

from __future__ import annotations

from datetime import datetime, timedelta


def epoch_from_fields(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
) -> datetime:
    """Build an epoch from IONEX date fields.

    Hour 24 (used by some producers for the end of day) rolls over to
    midnight of the next day.

    Raises:
        ValueError: If the fields do not form a valid date
    """
    if hour == 24 and minute == 0 and second == 0:
        return datetime(year, month, day) + timedelta(days=1)
    return datetime(year, month, day, hour, minute, second)


def epoch_to_fields(epoch: datetime) -> tuple[int, int, int, int, int, int]:
    """Decompose an epoch into IONEX date fields (sub-seconds dropped)."""
    return epoch.year, epoch.month, epoch.day, epoch.hour, epoch.minute, epoch.second


def doy_from_date(year: int, month: int, day: int) -> int:
    """Calculate day of year from calendar date.

    Args:
        year: Year
        month: Month (1-12)
        day: Day of month

    Returns:
        Day of year (1-366)
    """
    return datetime(year, month, day).timetuple().tm_yday


def date_from_doy(year: int, doy: int) -> datetime:
    """Convert year and day of year to a datetime at midnight.

    Raises:
        ValueError: If doy is out of range for the year
    """
    if doy < 1:
        raise ValueError(f"Day of year must be >= 1, got {doy}")
    result = datetime(year, 1, 1) + timedelta(days=doy - 1)
    if result.year != year:
        raise ValueError(f"Day of year {doy} out of range for {year}")
    return result
