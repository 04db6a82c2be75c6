"""
Tests for the Cost Rule Evaluator

These tests verify per-block rule matching including:
- Cost operators and base-cost idempotence
- Time-of-day windows (normal and wrapping past midnight)
- Month / week / weekday rules (every matching unit applies)
- Custom date rules (first matching day only)
- Person count and duration count ranges
- Stop-after-first-match policy
"""

import pytest
from datetime import date, datetime, time
from decimal import Decimal

from bookcalc.errors import InvalidConfigError
from bookcalc.models.booking import BookingBlock
from bookcalc.models.cost_rules import (
    CalendarUnit,
    CalendarUnitRule,
    CostOperator,
    CustomDateRule,
    DurationCountRule,
    PersonCountRule,
    TimeRangeRule,
    TimeWindow,
)
from bookcalc.models.pricing import DurationUnit
from bookcalc.services.cost_rules import (
    CalculationState,
    CostRuleEvaluator,
    EvaluationContext,
    apply_cost,
    recurring_month,
)

from conftest import make_effect


BLOCK_COST = Decimal("10")


def make_evaluator(
    unit=DurationUnit.DAY,
    total_persons=None,
    requested_duration=None,
    apply_multiple_rules=True,
    base_cost=Decimal("0")
):
    state = CalculationState(base_cost=base_cost)
    context = EvaluationContext(
        duration_unit=unit,
        current_year=2026,
        total_persons=total_persons,
        requested_duration=requested_duration,
        apply_multiple_rules=apply_multiple_rules,
    )
    return CostRuleEvaluator(context, state), state


def make_block(start: datetime, end: datetime, index: int = 0) -> BookingBlock:
    return BookingBlock(index=index, start=start, end=end)


class TestApplyCost:
    """Unit tests for the cost operators"""

    def test_times(self):
        assert apply_cost(Decimal("10"), CostOperator.TIMES, Decimal("1.5")) == Decimal("15")

    def test_divide(self):
        assert apply_cost(Decimal("10"), CostOperator.DIVIDE, Decimal("4")) == Decimal("2.5")

    def test_minus(self):
        assert apply_cost(Decimal("10"), CostOperator.MINUS, Decimal("3")) == Decimal("7")

    def test_equals_replaces_value(self):
        assert apply_cost(Decimal("10"), CostOperator.EQUALS, Decimal("42")) == Decimal("42")

    def test_plus(self):
        assert apply_cost(Decimal("10"), CostOperator.PLUS, Decimal("5")) == Decimal("15")

    def test_divide_by_zero_is_config_error(self):
        with pytest.raises(InvalidConfigError):
            apply_cost(Decimal("10"), CostOperator.DIVIDE, Decimal("0"))


class TestApplyBaseCost:
    """Base-cost effects apply at most once per rule key"""

    def test_same_key_applies_once(self):
        state = CalculationState(base_cost=Decimal("10"))

        assert state.apply_base_cost(CostOperator.PLUS, Decimal("5"), "r1") == Decimal("15")
        assert state.apply_base_cost(CostOperator.PLUS, Decimal("5"), "r1") == Decimal("15")
        assert state.applied_base_rule_keys == {"r1"}

    def test_different_keys_both_apply(self):
        state = CalculationState(base_cost=Decimal("10"))

        state.apply_base_cost(CostOperator.PLUS, Decimal("5"), "r1")
        state.apply_base_cost(CostOperator.TIMES, Decimal("2"), "r2")

        assert state.base_cost == Decimal("30")

    def test_first_override_wins(self):
        state = CalculationState()
        start = datetime(2026, 3, 2)

        assert state.record_override(start, Decimal("50")) is True
        assert state.record_override(start, Decimal("80")) is False
        assert state.overrides == {start: Decimal("50")}


class TestTimeRangeRules:
    """Time-of-day windows for minute/hour products"""

    # 2026-03-02 is a Monday
    MONDAY = date(2026, 3, 2)

    def night_rule(self):
        return TimeRangeRule(
            key="night",
            window=TimeWindow(time(22, 0), time(6, 0), make_effect(block=("plus", 5))),
        )

    def test_wrapping_window_matches_block_across_midnight(self):
        """22:00-06:00 matches a block from 23:00 to 01:00"""
        evaluator, _ = make_evaluator(unit=DurationUnit.HOUR)
        block = make_block(datetime(2026, 3, 2, 23, 0), datetime(2026, 3, 3, 1, 0))

        assert evaluator.evaluate_block(block, BLOCK_COST, [self.night_rule()]) == Decimal("15")

    def test_wrapping_window_ignores_daytime_block(self):
        """22:00-06:00 does not match a block from 10:00 to 12:00"""
        evaluator, _ = make_evaluator(unit=DurationUnit.HOUR)
        block = make_block(datetime(2026, 3, 2, 10, 0), datetime(2026, 3, 2, 12, 0))

        assert evaluator.evaluate_block(block, BLOCK_COST, [self.night_rule()]) == BLOCK_COST

    def test_wrapping_window_matches_early_morning_block(self):
        evaluator, _ = make_evaluator(unit=DurationUnit.HOUR)
        block = make_block(datetime(2026, 3, 3, 2, 0), datetime(2026, 3, 3, 3, 0))

        assert evaluator.evaluate_block(block, BLOCK_COST, [self.night_rule()]) == Decimal("15")

    def test_normal_window_requires_full_containment(self):
        rule = TimeRangeRule(
            key="office",
            window=TimeWindow(time(9, 0), time(17, 0), make_effect(block=("times", 2))),
        )
        evaluator, _ = make_evaluator(unit=DurationUnit.HOUR)

        inside = make_block(datetime(2026, 3, 2, 10, 0), datetime(2026, 3, 2, 12, 0))
        overlapping = make_block(datetime(2026, 3, 2, 16, 0), datetime(2026, 3, 2, 18, 0))

        assert evaluator.evaluate_block(inside, BLOCK_COST, [rule]) == Decimal("20")
        assert evaluator.evaluate_block(overlapping, BLOCK_COST, [rule]) == BLOCK_COST

    def test_skipped_for_day_products(self):
        evaluator, _ = make_evaluator(unit=DurationUnit.DAY)
        block = make_block(datetime(2026, 3, 2, 23, 0), datetime(2026, 3, 3, 23, 0))

        assert evaluator.evaluate_block(block, BLOCK_COST, [self.night_rule()]) == BLOCK_COST

    def test_weekday_filter(self):
        monday_rule = TimeRangeRule(
            key="monday",
            window=TimeWindow(time(9, 0), time(17, 0), make_effect(block=("plus", 1))),
            day_of_week=1,
        )
        tuesday_rule = TimeRangeRule(
            key="tuesday",
            window=TimeWindow(time(9, 0), time(17, 0), make_effect(block=("plus", 100))),
            day_of_week=2,
        )
        evaluator, _ = make_evaluator(unit=DurationUnit.HOUR)
        block = make_block(datetime(2026, 3, 2, 10, 0), datetime(2026, 3, 2, 11, 0))

        assert evaluator.evaluate_block(block, BLOCK_COST, [monday_rule, tuesday_rule]) == Decimal("11")

    def test_date_window_replaces_weekday_window(self):
        rule = TimeRangeRule(
            key="holiday-hours",
            window=TimeWindow(time(9, 0), time(17, 0), make_effect(block=("plus", 5))),
            date_windows={
                self.MONDAY: TimeWindow(time(8, 0), time(9, 0), make_effect(block=("plus", 100))),
            },
        )
        evaluator, _ = make_evaluator(unit=DurationUnit.HOUR)

        late_morning = make_block(datetime(2026, 3, 2, 10, 0), datetime(2026, 3, 2, 12, 0))
        early = make_block(datetime(2026, 3, 2, 8, 0), datetime(2026, 3, 2, 9, 0))
        next_day = make_block(datetime(2026, 3, 3, 10, 0), datetime(2026, 3, 3, 12, 0))

        assert evaluator.evaluate_block(late_morning, BLOCK_COST, [rule]) == BLOCK_COST
        assert evaluator.evaluate_block(early, BLOCK_COST, [rule]) == Decimal("110")
        assert evaluator.evaluate_block(next_day, BLOCK_COST, [rule]) == Decimal("15")

    def test_date_only_rule_skips_other_dates(self):
        rule = TimeRangeRule(
            key="range",
            date_windows={
                self.MONDAY: TimeWindow(time(0, 0), time(23, 59), make_effect(block=("plus", 5))),
            },
        )
        evaluator, _ = make_evaluator(unit=DurationUnit.HOUR)
        block = make_block(datetime(2026, 3, 3, 10, 0), datetime(2026, 3, 3, 11, 0))

        assert evaluator.evaluate_block(block, BLOCK_COST, [rule]) == BLOCK_COST


class TestCalendarUnitRules:
    """Every matching month/week/day inside a block applies"""

    def test_each_matching_day_applies(self):
        """A 2-day block over Saturday and Sunday gets both weekend surcharges"""
        rule = CalendarUnitRule(
            key="weekend",
            unit=CalendarUnit.DAY,
            values={6: make_effect(block=("plus", 5)), 7: make_effect(block=("plus", 5))},
        )
        evaluator, _ = make_evaluator()
        block = make_block(datetime(2026, 3, 7), datetime(2026, 3, 9))

        assert evaluator.evaluate_block(block, BLOCK_COST, [rule]) == Decimal("20")

    def test_iso_week_number(self):
        # 2026-03-02 falls in ISO week 10
        rule = CalendarUnitRule(
            key="week-10",
            unit=CalendarUnit.WEEK,
            values={10: make_effect(block=("times", 2))},
        )
        evaluator, _ = make_evaluator()
        block = make_block(datetime(2026, 3, 2), datetime(2026, 3, 3))

        assert evaluator.evaluate_block(block, BLOCK_COST, [rule]) == Decimal("20")

    def test_month_override_is_recorded_for_block_start(self):
        rule = CalendarUnitRule(
            key="december",
            unit=CalendarUnit.MONTH,
            values={12: make_effect(override=Decimal("50"))},
        )
        evaluator, state = make_evaluator()
        block = make_block(datetime(2026, 12, 24), datetime(2026, 12, 25))

        evaluator.evaluate_block(block, BLOCK_COST, [rule])

        assert state.overrides == {datetime(2026, 12, 24): Decimal("50")}

    def test_month_rule_applies_in_later_years(self):
        rule = CalendarUnitRule(
            key="december",
            unit=CalendarUnit.MONTH,
            values={12: make_effect(block=("plus", 3))},
        )
        evaluator, _ = make_evaluator()
        block = make_block(datetime(2027, 12, 1), datetime(2027, 12, 2))

        assert evaluator.evaluate_block(block, BLOCK_COST, [rule]) == Decimal("13")

    def test_recurring_month_keeps_december(self):
        assert recurring_month(12, 2027, 2026) == 12
        assert recurring_month(1, 2027, 2026) == 1
        assert recurring_month(5, 2026, 2026) == 5

    def test_first_override_for_block_wins(self):
        first = CalendarUnitRule(
            key="first", unit=CalendarUnit.DAY, values={1: make_effect(override=Decimal("50"))}
        )
        second = CalendarUnitRule(
            key="second", unit=CalendarUnit.DAY, values={1: make_effect(override=Decimal("80"))}
        )
        evaluator, state = make_evaluator()
        block = make_block(datetime(2026, 3, 2), datetime(2026, 3, 3))

        evaluator.evaluate_block(block, BLOCK_COST, [first, second])

        assert state.overrides[datetime(2026, 3, 2)] == Decimal("50")


class TestCustomDateRules:
    """Only the first matching day inside a block applies"""

    def test_stops_at_first_matching_day(self):
        rule = CustomDateRule(
            key="christmas",
            dates={
                date(2026, 12, 24): make_effect(block=("plus", 5)),
                date(2026, 12, 25): make_effect(block=("plus", 7)),
            },
        )
        evaluator, _ = make_evaluator()
        block = make_block(datetime(2026, 12, 23), datetime(2026, 12, 26))

        assert evaluator.evaluate_block(block, BLOCK_COST, [rule]) == Decimal("15")

    def test_records_override(self):
        rule = CustomDateRule(
            key="free-day",
            dates={date(2026, 3, 4): make_effect(override=Decimal("0"))},
        )
        evaluator, state = make_evaluator()
        block = make_block(datetime(2026, 3, 4), datetime(2026, 3, 5))

        evaluator.evaluate_block(block, BLOCK_COST, [rule])

        assert state.overrides == {datetime(2026, 3, 4): Decimal("0")}

    def test_no_match_outside_block(self):
        rule = CustomDateRule(
            key="later",
            dates={date(2026, 3, 10): make_effect(block=("plus", 5))},
        )
        evaluator, _ = make_evaluator()
        block = make_block(datetime(2026, 3, 4), datetime(2026, 3, 5))

        assert evaluator.evaluate_block(block, BLOCK_COST, [rule]) == BLOCK_COST


class TestRangeRules:
    """Person count and duration count rules"""

    def test_person_count_in_range(self):
        rule = PersonCountRule("group", 2, 4, make_effect(block=("times", 2)))
        evaluator, _ = make_evaluator(total_persons=3)
        block = make_block(datetime(2026, 3, 2), datetime(2026, 3, 3))

        assert evaluator.evaluate_block(block, BLOCK_COST, [rule]) == Decimal("20")

    def test_person_rule_needs_persons(self):
        rule = PersonCountRule("group", 0, 4, make_effect(block=("times", 2)))
        evaluator, _ = make_evaluator(total_persons=None)
        block = make_block(datetime(2026, 3, 2), datetime(2026, 3, 3))

        assert evaluator.evaluate_block(block, BLOCK_COST, [rule]) == BLOCK_COST

    def test_duration_count_in_range(self):
        rule = DurationCountRule("long-stay", 3, 7, make_effect(block=("minus", 2)))
        evaluator, _ = make_evaluator(requested_duration=5)
        block = make_block(datetime(2026, 3, 2), datetime(2026, 3, 3))

        assert evaluator.evaluate_block(block, BLOCK_COST, [rule]) == Decimal("8")

    def test_duration_rule_needs_explicit_duration(self):
        rule = DurationCountRule("long-stay", 0, 7, make_effect(block=("minus", 2)))
        evaluator, _ = make_evaluator(requested_duration=None)
        block = make_block(datetime(2026, 3, 2), datetime(2026, 3, 3))

        assert evaluator.evaluate_block(block, BLOCK_COST, [rule]) == BLOCK_COST


class TestRulePolicy:
    """Rule order and the stop-after-first-match policy"""

    def rules(self):
        return [
            PersonCountRule("a", 1, 10, make_effect(block=("plus", 5))),
            PersonCountRule("b", 1, 10, make_effect(block=("times", 2))),
        ]

    def test_all_matching_rules_apply_in_order(self):
        evaluator, _ = make_evaluator(total_persons=2)
        block = make_block(datetime(2026, 3, 2), datetime(2026, 3, 3))

        # (10 + 5) * 2
        assert evaluator.evaluate_block(block, BLOCK_COST, self.rules()) == Decimal("30")

    def test_stop_after_first_match(self):
        evaluator, _ = make_evaluator(total_persons=2, apply_multiple_rules=False)
        block = make_block(datetime(2026, 3, 2), datetime(2026, 3, 3))

        assert evaluator.evaluate_block(block, BLOCK_COST, self.rules()) == Decimal("15")

    def test_base_effect_applied_once_across_blocks(self):
        rule = PersonCountRule("setup-fee", 1, 10, make_effect(base=("plus", 25)))
        evaluator, state = make_evaluator(total_persons=2, base_cost=Decimal("10"))

        for day in (2, 3, 4):
            block = make_block(datetime(2026, 3, day), datetime(2026, 3, day + 1), index=day - 2)
            evaluator.evaluate_block(block, BLOCK_COST, [rule])

        assert state.base_cost == Decimal("35")
