"""
Cost Rule Evaluator

Matches the configured cost rules against one booked block and folds their
effects into the running block cost and the running base cost.

Per-kind matching:
- time_range: block must sit inside a time-of-day window (minute/hour units only)
- calendar_unit: every month/week/day inside the block is checked, each match applies
- custom: days inside the block are scanned, only the first matching day applies
- persons: total persons within the rule range
- blocks: requested duration within the rule range

Base-cost effects are applied at most once per rule key for a whole
calculation; that bookkeeping lives in a per-calculation CalculationState.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, Optional, Set, Tuple

from dateutil.relativedelta import relativedelta

from ..errors import InvalidConfigError
from ..models.booking import BookingBlock
from ..models.cost_rules import (
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
)
from ..models.money import ZERO
from ..models.pricing import DurationUnit

logger = logging.getLogger(__name__)


def apply_cost(base: Decimal, operator: CostOperator, operand: Decimal) -> Decimal:
    """Apply a single cost adjustment to `base`"""
    if operator == CostOperator.TIMES:
        return base * operand
    if operator == CostOperator.DIVIDE:
        if operand == 0:
            raise InvalidConfigError("Cannot divide by zero", {"field": "amount"})
        return base / operand
    if operator == CostOperator.MINUS:
        return base - operand
    if operator == CostOperator.EQUALS:
        return operand
    return base + operand


@dataclass
class CalculationState:
    """Mutable state scoped to exactly one cost calculation"""
    base_cost: Decimal = ZERO
    total_block_cost: Decimal = ZERO
    total_person_block_cost: Decimal = ZERO
    applied_base_rule_keys: Set[str] = field(default_factory=set)
    overrides: Dict[datetime, Decimal] = field(default_factory=dict)

    def apply_base_cost(self, operator: CostOperator, operand: Decimal, rule_key: str) -> Decimal:
        """Apply a base-cost adjustment unless this rule key already did"""
        if rule_key in self.applied_base_rule_keys:
            return self.base_cost
        self.applied_base_rule_keys.add(rule_key)
        self.base_cost = apply_cost(self.base_cost, operator, operand)
        return self.base_cost

    def record_override(self, block_start: datetime, amount: Decimal) -> bool:
        """Record a block override; the first one recorded for a block wins"""
        if block_start in self.overrides:
            return False
        self.overrides[block_start] = amount
        return True


@dataclass(frozen=True)
class EvaluationContext:
    duration_unit: DurationUnit
    current_year: int
    total_persons: Optional[int] = None  # None when the request has no persons
    requested_duration: Optional[int] = None  # None when the request omits it
    apply_multiple_rules: bool = True


def recurring_month(month: int, year: int, current_year: int) -> int:
    """Months beyond the current year fold back onto 1-12 (12 stays 12)"""
    if year > current_year:
        return (month + 12) % 12 or 12
    return month


def _calendar_key(moment: datetime, unit: CalendarUnit, current_year: int) -> int:
    if unit == CalendarUnit.MONTH:
        return recurring_month(moment.month, moment.year, current_year)
    if unit == CalendarUnit.WEEK:
        return moment.isocalendar()[1]
    return moment.isoweekday()


# Month steps clamp to the end of shorter months (Jan 31, Feb 28, Mar 28)
_CALENDAR_STEP = {
    CalendarUnit.MONTH: relativedelta(months=1),
    CalendarUnit.WEEK: relativedelta(weeks=1),
    CalendarUnit.DAY: relativedelta(days=1),
}


def _to_minute(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)


class CostRuleEvaluator:
    """
    Evaluates cost rules for one calculation.

    Each rule kind has its own handler returning (block_cost, matched).
    """

    def __init__(self, context: EvaluationContext, state: CalculationState):
        self.context = context
        self.state = state
        self._handlers: Dict[RuleKind, Callable[..., Tuple[Decimal, bool]]] = {
            RuleKind.TIME_RANGE: self._evaluate_time_range,
            RuleKind.CALENDAR_UNIT: self._evaluate_calendar_unit,
            RuleKind.CUSTOM_DATE: self._evaluate_custom_date,
            RuleKind.PERSON_COUNT: self._evaluate_person_count,
            RuleKind.DURATION_COUNT: self._evaluate_duration_count,
        }

    def evaluate_block(
        self,
        block: BookingBlock,
        block_cost: Decimal,
        rules: Iterable[CostRule]
    ) -> Decimal:
        """
        Fold every matching rule into `block_cost`.

        Rules are visited in configured order. When the context disables
        multiple rules per block, evaluation stops after the first match.
        """
        for rule in rules:
            handler = self._handlers.get(rule.kind)
            if handler is None:
                raise InvalidConfigError(
                    f"Unsupported rule kind: {rule.kind}", {"rule": rule.key}
                )
            block_cost, matched = handler(rule, block, block_cost)
            if matched and not self.context.apply_multiple_rules:
                break
        return block_cost

    def _apply_effect(self, rule: CostRule, effect: CostEffect, block_cost: Decimal) -> Decimal:
        block_cost = apply_cost(block_cost, effect.block.operator, effect.block.amount)
        self.state.apply_base_cost(effect.base.operator, effect.base.amount, rule.key)
        return block_cost

    def _record_override(self, rule: CostRule, effect: CostEffect, block: BookingBlock):
        if effect.has_override and self.state.record_override(block.start, effect.override):
            logger.debug(f"Rule {rule.key} overrides block {block.index} with {effect.override}")

    # ==================
    # Per-kind handlers
    # ==================

    def _evaluate_time_range(self, rule: TimeRangeRule, block: BookingBlock, block_cost: Decimal):
        if not self.context.duration_unit.is_intraday:
            return block_cost, False

        window = rule.window_for(block.start_date, block.iso_weekday)
        if window is None:
            return block_cost, False

        block_start = _to_minute(block.start)
        block_end = _to_minute(block.end)
        rule_start = block_start.replace(hour=window.start.hour, minute=window.start.minute)
        rule_end = block_start.replace(hour=window.end.hour, minute=window.end.minute)

        if window.wraps_midnight:
            # e.g. 22:00 today until 06:00 tomorrow
            matched = (
                block_end > rule_start
                or (block_start >= rule_start and block_end >= rule_end)
                or (block_start <= rule_start and block_end <= rule_end)
            )
        else:
            matched = block_start >= rule_start and block_end <= rule_end

        if not matched:
            return block_cost, False

        logger.debug(f"Time rule {rule.key} matched block {block.index}")
        return self._apply_effect(rule, window.effect, block_cost), True

    def _evaluate_calendar_unit(self, rule: CalendarUnitRule, block: BookingBlock, block_cost: Decimal):
        # Every unit inside the block applies on its own, so a block that spans
        # two matching days gets both adjustments.
        matched = False
        step = _CALENDAR_STEP[rule.unit]
        check = block.start
        while check < block.end:
            key = _calendar_key(check, rule.unit, self.context.current_year)
            effect = rule.values.get(key)
            if effect is not None:
                block_cost = self._apply_effect(rule, effect, block_cost)
                self._record_override(rule, effect, block)
                matched = True
            check = check + step
        if matched:
            logger.debug(f"Calendar rule {rule.key} matched block {block.index}")
        return block_cost, matched

    def _evaluate_custom_date(self, rule: CustomDateRule, block: BookingBlock, block_cost: Decimal):
        # Only the first matching day counts; overlapping custom ranges must
        # not compound inside one block.
        check = block.start
        while check < block.end:
            effect = rule.dates.get(check.date())
            if effect is not None:
                block_cost = self._apply_effect(rule, effect, block_cost)
                self._record_override(rule, effect, block)
                logger.debug(f"Custom date rule {rule.key} matched {check.date()} in block {block.index}")
                return block_cost, True
            check = check + relativedelta(days=1)
        return block_cost, False

    def _evaluate_person_count(self, rule: PersonCountRule, block: BookingBlock, block_cost: Decimal):
        total = self.context.total_persons
        if total is None or not rule.contains(total):
            return block_cost, False
        return self._apply_effect(rule, rule.effect, block_cost), True

    def _evaluate_duration_count(self, rule: DurationCountRule, block: BookingBlock, block_cost: Decimal):
        duration = self.context.requested_duration
        if duration is None or not rule.contains(duration):
            return block_cost, False
        return self._apply_effect(rule, rule.effect, block_cost), True
