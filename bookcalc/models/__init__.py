# Domain models
from .booking import BookingBlock, BookingRequest
from .cost_rules import (
    Adjustment,
    CalendarUnit,
    CalendarUnitRule,
    CostEffect,
    CostOperator,
    CostRule,
    CustomDateRule,
    DurationCountRule,
    PersonCountRule,
    RuleKind,
    TimeRangeRule,
    TimeWindow,
)
from .pricing import (
    BookableProduct,
    DurationType,
    DurationUnit,
    PersonType,
    PricingConfig,
    Resource,
)

__all__ = [
    "BookingBlock", "BookingRequest",
    "Adjustment", "CalendarUnit", "CalendarUnitRule", "CostEffect", "CostOperator",
    "CostRule", "CustomDateRule", "DurationCountRule", "PersonCountRule",
    "RuleKind", "TimeRangeRule", "TimeWindow",
    "BookableProduct", "DurationType", "DurationUnit", "PersonType",
    "PricingConfig", "Resource",
]
