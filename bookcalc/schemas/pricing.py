"""
Pricing Schemas

Pydantic models for pricing snapshots, cost rules and the pricing API.
Each schema converts itself into the validated domain model.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.booking import BookingRequest
from ..models.cost_rules import (
    Adjustment,
    CalendarUnit,
    CalendarUnitRule,
    CostEffect,
    CostOperator,
    CostRule,
    CustomDateRule,
    DurationCountRule,
    PersonCountRule,
    TimeRangeRule,
    TimeWindow,
)
from ..models.pricing import (
    BookableProduct,
    DurationType,
    DurationUnit,
    PersonType,
    PricingConfig,
    Resource,
)


# ==================
# Cost rules
# ==================

class AdjustmentSchema(BaseModel):
    """One side of a rule effect, e.g. {"operator": "times", "amount": 1.5}"""
    operator: CostOperator
    amount: Decimal

    def to_adjustment(self) -> Adjustment:
        return Adjustment(self.operator, self.amount)


class EffectFields(BaseModel):
    """Block/base adjustments shared by every rule shape"""
    block: Optional[AdjustmentSchema] = None
    base: Optional[AdjustmentSchema] = None

    def effect(self, override: Optional[Decimal] = None) -> CostEffect:
        kwargs = {"override": override}
        if self.block is not None:
            kwargs["block"] = self.block.to_adjustment()
        if self.base is not None:
            kwargs["base"] = self.base.to_adjustment()
        return CostEffect(**kwargs)


class OverridableEffectSchema(EffectFields):
    override: Optional[Decimal] = Field(None, ge=0, description="Replaces the block cost")

    def to_effect(self) -> CostEffect:
        return self.effect(self.override)


class TimeWindowSchema(EffectFields):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    start: time = Field(..., alias="from")
    end: time = Field(..., alias="to")

    def to_window(self) -> TimeWindow:
        return TimeWindow(self.start, self.end, self.effect())


class RuleSchemaBase(BaseModel):
    key: Optional[str] = Field(None, description="Defaults to the rule position")


class TimeRangeRuleSchema(RuleSchemaBase):
    kind: Literal["time_range"]
    window: Optional[TimeWindowSchema] = None
    day_of_week: Optional[int] = Field(None, ge=1, le=7, description="1=Mon ... 7=Sun")
    date_windows: Dict[date, TimeWindowSchema] = Field(default_factory=dict)

    def to_rule(self, key: str) -> CostRule:
        return TimeRangeRule(
            key=key,
            window=self.window.to_window() if self.window else None,
            day_of_week=self.day_of_week,
            date_windows={day: w.to_window() for day, w in self.date_windows.items()},
        )


class CalendarUnitRuleSchema(RuleSchemaBase):
    kind: Literal["months", "weeks", "days"]
    values: Dict[int, OverridableEffectSchema]

    def to_rule(self, key: str) -> CostRule:
        unit = {
            "months": CalendarUnit.MONTH,
            "weeks": CalendarUnit.WEEK,
            "days": CalendarUnit.DAY,
        }[self.kind]
        return CalendarUnitRule(
            key=key,
            unit=unit,
            values={value: effect.to_effect() for value, effect in self.values.items()},
        )


class CustomDateRuleSchema(RuleSchemaBase):
    kind: Literal["custom"]
    dates: Dict[date, OverridableEffectSchema]

    def to_rule(self, key: str) -> CostRule:
        return CustomDateRule(
            key=key,
            dates={day: effect.to_effect() for day, effect in self.dates.items()},
        )


class RangeRuleSchema(RuleSchemaBase, EffectFields):
    model_config = ConfigDict(populate_by_name=True)

    range_from: int = Field(..., alias="from", ge=0)
    range_to: int = Field(..., alias="to", ge=0)


class PersonCountRuleSchema(RangeRuleSchema):
    kind: Literal["persons"]

    def to_rule(self, key: str) -> CostRule:
        return PersonCountRule(key, self.range_from, self.range_to, self.effect())


class DurationCountRuleSchema(RangeRuleSchema):
    kind: Literal["blocks"]

    def to_rule(self, key: str) -> CostRule:
        return DurationCountRule(key, self.range_from, self.range_to, self.effect())


CostRuleSchema = Annotated[
    Union[
        TimeRangeRuleSchema,
        CalendarUnitRuleSchema,
        CustomDateRuleSchema,
        PersonCountRuleSchema,
        DurationCountRuleSchema,
    ],
    Field(discriminator="kind"),
]


# ==================
# Pricing snapshot
# ==================

class PricingConfigSchema(BaseModel):
    """Resolved pricing configuration of a product"""
    base_cost: Decimal = Field(..., ge=0, description="Charged once per booking")
    base_block_cost: Decimal = Field(..., ge=0, description="Charged per booked block")
    block_duration: int = Field(..., ge=1)
    block_duration_unit: DurationUnit
    duration_type: DurationType = DurationType.CUSTOMIZABLE
    buffer_period: Optional[int] = Field(None, ge=0)
    buffer_days: List[date] = Field(default_factory=list)
    cost_rules: List[CostRuleSchema] = Field(default_factory=list)
    has_person_cost_multiplier: bool = False
    currency: str = Field(default="USD", max_length=3)

    def to_config(self) -> PricingConfig:
        rules = [
            rule.to_rule(rule.key if rule.key is not None else str(position))
            for position, rule in enumerate(self.cost_rules)
        ]
        return PricingConfig(
            base_cost=self.base_cost,
            base_block_cost=self.base_block_cost,
            block_duration=self.block_duration,
            block_duration_unit=self.block_duration_unit,
            duration_type=self.duration_type,
            buffer_period=self.buffer_period,
            buffer_days=frozenset(self.buffer_days),
            cost_rules=tuple(rules),
            has_person_cost_multiplier=self.has_person_cost_multiplier,
            currency=self.currency,
        )


class ResourceSchema(BaseModel):
    id: str
    name: str = ""
    base_cost: Decimal = Field(default=0, ge=0)
    block_cost: Decimal = Field(default=0, ge=0)


class PersonTypeSchema(BaseModel):
    id: str
    name: str = ""
    base_cost: Decimal = Field(default=0, ge=0)
    block_cost: Decimal = Field(default=0, ge=0)
    min: Optional[int] = Field(None, ge=0)


class ProductSchema(BaseModel):
    id: str
    name: str = ""
    resources: List[ResourceSchema] = Field(default_factory=list)
    person_types: List[PersonTypeSchema] = Field(default_factory=list)
    has_persons: bool = False
    min_persons: int = Field(default=1, ge=0)
    min_duration: int = Field(default=1, ge=1)
    display_cost: Optional[Decimal] = Field(None, ge=0)

    def to_product(self) -> BookableProduct:
        return BookableProduct(
            id=self.id,
            name=self.name,
            resources={
                r.id: Resource(r.id, r.base_cost, r.block_cost, r.name)
                for r in self.resources
            },
            person_types={
                p.id: PersonType(p.id, p.base_cost, p.block_cost, p.min, p.name)
                for p in self.person_types
            },
            has_persons=self.has_persons,
            min_persons=self.min_persons,
            min_duration=self.min_duration,
            display_cost=self.display_cost,
        )


class BookingRequestSchema(BaseModel):
    start: datetime
    duration: Optional[int] = Field(None, ge=0, description="Units of the block duration unit")
    resource_id: Optional[str] = None
    persons: Dict[str, int] = Field(default_factory=dict)

    @field_validator("persons")
    @classmethod
    def validate_persons(cls, v):
        for person_id, count in v.items():
            if count < 0:
                raise ValueError(f"person count for {person_id} must not be negative")
        return v

    def to_request(self) -> BookingRequest:
        return BookingRequest(
            start=self.start,
            duration=self.duration,
            resource_id=self.resource_id,
            person_counts=dict(self.persons),
        )


# ==================
# API
# ==================

class BookingCostRequest(BaseModel):
    """Request for a booking cost calculation"""
    product: ProductSchema
    pricing: PricingConfigSchema
    booking: BookingRequestSchema


class BookingCostResponse(BaseModel):
    product_id: str
    cost: Decimal
    currency: str
    blocks_booked: int


class DisplayCostRequest(BaseModel):
    """Request for a "starting from" price"""
    product: ProductSchema
    pricing: PricingConfigSchema


class DisplayCostResponse(BaseModel):
    product_id: str
    display_cost: Decimal
    currency: str
    person_minimums: Dict[str, int] = Field(default_factory=dict)


class CostErrorResponse(BaseModel):
    reason: str
    message: str
    params: Dict[str, Any] = Field(default_factory=dict)
