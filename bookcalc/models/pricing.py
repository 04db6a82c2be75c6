"""
Pricing Configuration Models

Read-only snapshot of a bookable product's pricing:
- Base cost (once per booking) and base block cost (per booked block)
- Block length and unit, fixed vs customizable duration
- Buffer period and the precomputed buffer days
- Ordered cost rules
- Resources and person types with their own base/block costs
"""

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import FrozenSet, Mapping, Optional, Tuple

from ..errors import InvalidConfigError
from .cost_rules import CostRule
from .money import ZERO, to_count, to_money, to_optional_money


class DurationUnit(str, enum.Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    NIGHT = "night"
    WEEK = "week"
    MONTH = "month"

    @property
    def is_intraday(self) -> bool:
        """Minute and hour blocks: time rules apply, buffer days do not"""
        return self in (DurationUnit.MINUTE, DurationUnit.HOUR)


class DurationType(str, enum.Enum):
    FIXED = "fixed"
    CUSTOMIZABLE = "customizable"


@dataclass(frozen=True)
class Resource:
    id: str
    base_cost: Decimal = ZERO
    block_cost: Decimal = ZERO
    name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "base_cost", to_money(self.base_cost, "resource.base_cost"))
        object.__setattr__(self, "block_cost", to_money(self.block_cost, "resource.block_cost"))


@dataclass(frozen=True)
class PersonType:
    id: str
    base_cost: Decimal = ZERO
    block_cost: Decimal = ZERO
    min: Optional[int] = None  # Own minimum count, used by the display estimate
    name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "base_cost", to_money(self.base_cost, "person_type.base_cost"))
        object.__setattr__(self, "block_cost", to_money(self.block_cost, "person_type.block_cost"))
        if self.min is not None:
            to_count(self.min, "person_type.min")


@dataclass(frozen=True)
class PricingConfig:
    """
    Pricing configuration owned by a product.

    Rule order is significant: rules are evaluated in the order given.
    """
    base_cost: Decimal
    base_block_cost: Decimal
    block_duration: int
    block_duration_unit: DurationUnit
    duration_type: DurationType = DurationType.CUSTOMIZABLE
    buffer_period: Optional[int] = None
    buffer_days: FrozenSet[date] = frozenset()
    cost_rules: Tuple[CostRule, ...] = ()
    has_person_cost_multiplier: bool = False
    currency: str = "USD"

    def __post_init__(self):
        object.__setattr__(self, "base_cost", to_money(self.base_cost, "base_cost"))
        object.__setattr__(self, "base_block_cost", to_money(self.base_block_cost, "base_block_cost"))
        to_count(self.block_duration, "block_duration", minimum=1)
        try:
            object.__setattr__(self, "block_duration_unit", DurationUnit(self.block_duration_unit))
            object.__setattr__(self, "duration_type", DurationType(self.duration_type))
        except ValueError as e:
            raise InvalidConfigError(str(e), {"field": "block_duration_unit"})
        if self.buffer_period is not None:
            to_count(self.buffer_period, "buffer_period")
        object.__setattr__(self, "buffer_days", frozenset(self.buffer_days))
        object.__setattr__(self, "cost_rules", tuple(self.cost_rules))

        keys = [rule.key for rule in self.cost_rules]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise InvalidConfigError(
                f"Duplicate rule keys: {', '.join(duplicates)}", {"rules": duplicates}
            )

    @property
    def is_fixed_duration(self) -> bool:
        return self.duration_type == DurationType.FIXED

    @property
    def has_buffer_period(self) -> bool:
        return bool(self.buffer_period)


@dataclass(frozen=True)
class BookableProduct:
    """Product identity plus the lookups the cost engine resolves against"""
    id: str
    resources: Mapping[str, Resource] = field(default_factory=dict)
    person_types: Mapping[str, PersonType] = field(default_factory=dict)
    has_persons: bool = False
    min_persons: int = 1
    min_duration: int = 1
    display_cost: Optional[Decimal] = None
    name: str = ""

    def __post_init__(self):
        to_count(self.min_persons, "min_persons")
        to_count(self.min_duration, "min_duration", minimum=1)
        object.__setattr__(self, "display_cost", to_optional_money(self.display_cost, "display_cost"))

    @property
    def has_resources(self) -> bool:
        return bool(self.resources)

    @property
    def has_person_types(self) -> bool:
        return self.has_persons and bool(self.person_types)
