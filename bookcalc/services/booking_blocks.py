"""
Booking Block Geometry

Turns a request start + block count into concrete block instants:
- minute/hour blocks offset by timedelta
- day and night blocks offset by calendar days
- week blocks offset by 7 days
- month blocks offset by calendar months (end-of-month clamped)
"""

from datetime import date, datetime, timedelta
from typing import Iterator, Tuple

from dateutil.relativedelta import relativedelta

from ..models.booking import BookingBlock
from ..models.pricing import DurationUnit


def offset(moment: datetime, amount: int, unit: DurationUnit) -> datetime:
    """Shift `moment` by `amount` units of `unit`"""
    if unit == DurationUnit.MINUTE:
        return moment + timedelta(minutes=amount)
    if unit == DurationUnit.HOUR:
        return moment + timedelta(hours=amount)
    if unit in (DurationUnit.DAY, DurationUnit.NIGHT):
        # Nights are booked as calendar days
        return moment + timedelta(days=amount)
    if unit == DurationUnit.WEEK:
        return moment + timedelta(weeks=amount)
    if unit == DurationUnit.MONTH:
        return moment + relativedelta(months=amount)
    raise ValueError(f"Unsupported duration unit: {unit}")


def iter_booking_blocks(
    start: datetime,
    blocks_booked: int,
    block_duration: int,
    unit: DurationUnit
) -> Iterator[BookingBlock]:
    """Yield every booked block in order"""
    for index in range(blocks_booked):
        yield BookingBlock(
            index=index,
            start=offset(start, index * block_duration, unit),
            end=offset(start, (index + 1) * block_duration, unit),
        )


def block_calendar_days(
    start: datetime,
    index: int,
    block_duration: int,
    unit: DurationUnit
) -> Tuple[date, date]:
    """
    Calendar day of a block's first and last unit.

    The last unit starts one unit before the block end, so a one-day block
    starts and ends on the same day.
    """
    first = offset(start, index * block_duration, unit)
    last = offset(start, (index + 1) * block_duration - 1, unit)
    return first.date(), last.date()
