"""
Buffer Day Derivation

Builds the set of buffer days a new booking must not touch from the
product's existing bookings. The calculator only consumes the resulting set
(PricingConfig.buffer_days); callers use this helper to precompute it.
"""

from datetime import date, timedelta
from typing import FrozenSet, Iterable, Tuple

from ..models.pricing import DurationUnit


def buffer_length_days(buffer_period: int, unit: DurationUnit) -> int:
    """Buffer period expressed in calendar days"""
    if unit == DurationUnit.WEEK:
        return buffer_period * 7
    return buffer_period


def find_buffer_days(
    booked_ranges: Iterable[Tuple[date, date]],
    buffer_period: int,
    unit: DurationUnit
) -> FrozenSet[date]:
    """
    Days inside the buffer around existing bookings.

    Args:
        booked_ranges: (first_day, last_day) of each existing booking, inclusive
        buffer_period: buffer length in product duration units
        unit: product duration unit; minute/hour products have no buffer days

    Returns:
        Frozen set of buffer dates, excluding the booked days themselves
    """
    if not buffer_period or unit.is_intraday:
        return frozenset()

    length = buffer_length_days(buffer_period, unit)
    booked_ranges = list(booked_ranges)
    booked_days = set()
    buffer_days = set()

    for first_day, last_day in booked_ranges:
        day = first_day
        while day <= last_day:
            booked_days.add(day)
            day += timedelta(days=1)
        for offset in range(1, length + 1):
            buffer_days.add(first_day - timedelta(days=offset))
            buffer_days.add(last_day + timedelta(days=offset))

    return frozenset(buffer_days - booked_days)
