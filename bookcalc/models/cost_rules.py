"""
Cost Rule Models

Validated, immutable cost modifier rules attached to a pricing config.

Rule kinds:
- TimeRangeRule: time-of-day window per weekday or per exact calendar date
- CalendarUnitRule: keyed by month, ISO week or ISO weekday
- CustomDateRule: keyed by exact calendar date
- PersonCountRule: total persons within [from, to]
- DurationCountRule: requested duration within [from, to]

Every rule carries an effect pair (block adjustment, base adjustment) and a
stable key used to apply the base adjustment at most once per calculation.
"""

import enum
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import Mapping, Optional, Union

from ..errors import InvalidConfigError
from .money import ZERO, to_count, to_money, to_optional_money


class CostOperator(str, enum.Enum):
    TIMES = "times"
    DIVIDE = "divide"
    MINUS = "minus"
    EQUALS = "equals"
    PLUS = "plus"


class RuleKind(str, enum.Enum):
    TIME_RANGE = "time_range"
    CALENDAR_UNIT = "calendar_unit"
    CUSTOM_DATE = "custom"
    PERSON_COUNT = "persons"
    DURATION_COUNT = "blocks"


class CalendarUnit(str, enum.Enum):
    MONTH = "month"
    WEEK = "week"
    DAY = "day"


# Valid key ranges per calendar unit (month number, ISO week, ISO weekday)
CALENDAR_UNIT_BOUNDS = {
    CalendarUnit.MONTH: (1, 12),
    CalendarUnit.WEEK: (1, 53),
    CalendarUnit.DAY: (1, 7),
}


@dataclass(frozen=True)
class Adjustment:
    """One side of a rule effect: `operator` applied with `amount`"""
    operator: CostOperator
    amount: Decimal

    def __post_init__(self):
        try:
            operator = CostOperator(self.operator)
        except ValueError:
            raise InvalidConfigError(
                f"Unknown cost operator: {self.operator!r}", {"field": "operator"}
            )
        object.__setattr__(self, "operator", operator)
        amount = to_money(self.amount, "amount", allow_negative=True)
        if operator == CostOperator.DIVIDE and amount == 0:
            raise InvalidConfigError("Cannot divide by zero", {"field": "amount"})
        object.__setattr__(self, "amount", amount)


NO_ADJUSTMENT = Adjustment(CostOperator.PLUS, ZERO)


@dataclass(frozen=True)
class CostEffect:
    """What a matched rule does to the running block and base costs"""
    block: Adjustment = NO_ADJUSTMENT
    base: Adjustment = NO_ADJUSTMENT
    override: Optional[Decimal] = None  # Replaces the block cost when present

    def __post_init__(self):
        object.__setattr__(self, "override", to_optional_money(self.override, "override"))

    @property
    def has_override(self) -> bool:
        return self.override is not None


@dataclass(frozen=True)
class TimeWindow:
    """Time-of-day window; end <= start means it wraps past midnight"""
    start: time
    end: time
    effect: CostEffect = field(default_factory=CostEffect)

    def __post_init__(self):
        if not isinstance(self.start, time) or not isinstance(self.end, time):
            raise InvalidConfigError("Time window bounds must be times", {"field": "from"})
        if self.effect.has_override:
            raise InvalidConfigError(
                "Time range rules cannot override block costs", {"field": "override"}
            )

    @property
    def wraps_midnight(self) -> bool:
        return self.end <= self.start


def _check_range(range_from: int, range_to: int):
    to_count(range_from, "from")
    to_count(range_to, "to")
    if range_from > range_to:
        raise InvalidConfigError(
            f"Range start {range_from} is after range end {range_to}", {"field": "from"}
        )


@dataclass(frozen=True)
class TimeRangeRule:
    key: str
    window: Optional[TimeWindow] = None
    day_of_week: Optional[int] = None  # ISO weekday, None means every day
    date_windows: Mapping[date, TimeWindow] = field(default_factory=dict)

    kind = RuleKind.TIME_RANGE

    def __post_init__(self):
        if self.window is None and not self.date_windows:
            raise InvalidConfigError(
                f"Time range rule {self.key} has no window", {"rule": self.key}
            )
        if self.day_of_week is not None:
            if to_count(self.day_of_week, "day_of_week", minimum=1) > 7:
                raise InvalidConfigError("day_of_week must be 1-7", {"rule": self.key})

    def window_for(self, day: date, iso_weekday: int) -> Optional[TimeWindow]:
        """Date-specific window first, then the weekday window"""
        if day in self.date_windows:
            return self.date_windows[day]
        if self.window is None:
            return None
        if self.day_of_week is not None and self.day_of_week != iso_weekday:
            return None
        return self.window


@dataclass(frozen=True)
class CalendarUnitRule:
    key: str
    unit: CalendarUnit
    values: Mapping[int, CostEffect]

    kind = RuleKind.CALENDAR_UNIT

    def __post_init__(self):
        try:
            unit = CalendarUnit(self.unit)
        except ValueError:
            raise InvalidConfigError(f"Unknown calendar unit: {self.unit!r}", {"rule": self.key})
        object.__setattr__(self, "unit", unit)
        low, high = CALENDAR_UNIT_BOUNDS[unit]
        if not self.values:
            raise InvalidConfigError(f"Rule {self.key} has no {unit.value} values", {"rule": self.key})
        for value in self.values:
            if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
                raise InvalidConfigError(
                    f"Invalid {unit.value} value {value!r} in rule {self.key}",
                    {"rule": self.key},
                )


@dataclass(frozen=True)
class CustomDateRule:
    key: str
    dates: Mapping[date, CostEffect]

    kind = RuleKind.CUSTOM_DATE

    def __post_init__(self):
        if not self.dates:
            raise InvalidConfigError(f"Rule {self.key} has no dates", {"rule": self.key})


@dataclass(frozen=True)
class PersonCountRule:
    key: str
    range_from: int
    range_to: int
    effect: CostEffect

    kind = RuleKind.PERSON_COUNT

    def __post_init__(self):
        _check_range(self.range_from, self.range_to)

    def contains(self, value: int) -> bool:
        return self.range_from <= value <= self.range_to


@dataclass(frozen=True)
class DurationCountRule:
    key: str
    range_from: int
    range_to: int
    effect: CostEffect

    kind = RuleKind.DURATION_COUNT

    def __post_init__(self):
        _check_range(self.range_from, self.range_to)

    def contains(self, value: int) -> bool:
        return self.range_from <= value <= self.range_to


CostRule = Union[
    TimeRangeRule,
    CalendarUnitRule,
    CustomDateRule,
    PersonCountRule,
    DurationCountRule,
]
