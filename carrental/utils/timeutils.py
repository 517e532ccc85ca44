"""
Date and money helpers shared by the calculators.

Calendar dates are treated as local midnight. Amounts are converted to
Decimal through their string form so float inputs keep their printed value,
and every amount the core stores is rounded to the currency's minor unit.
"""

import math
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

DateLike = Union[date, datetime]
Amount = Union[Decimal, int, float, str]

SECONDS_PER_DAY = 24 * 60 * 60
SECONDS_PER_HOUR = 60 * 60


def to_datetime(value: DateLike, tz: Optional[tzinfo] = None) -> datetime:
    """Promote a calendar date to midnight in ``tz``; datetimes pass through."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=tz)


def ceil_days(delta: timedelta) -> int:
    """Whole days in a timedelta, rounded up. Negative spans stay negative."""
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def ceil_hours(delta: timedelta) -> int:
    return math.ceil(delta.total_seconds() / SECONDS_PER_HOUR)


def days_between(start: DateLike, end: DateLike) -> int:
    """
    Ceiling of (end - start) in days.

    A calendar date paired with an aware datetime is taken as midnight in
    that datetime's zone.
    """
    tz = _tzinfo_of(start) or _tzinfo_of(end)
    return ceil_days(to_datetime(end, tz) - to_datetime(start, tz))


def _tzinfo_of(value: DateLike) -> Optional[tzinfo]:
    return value.tzinfo if isinstance(value, datetime) else None


def to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Amount, minor_units: int = 100) -> Decimal:
    """Round an amount to the currency's minor unit, half up."""
    step = Decimal(1) / Decimal(minor_units)
    return to_decimal(amount).quantize(step, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Amount, minor_units: int = 100) -> int:
    """Convert a major-unit amount to integer minor units, rounding half up."""
    scaled = to_decimal(amount) * minor_units
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
