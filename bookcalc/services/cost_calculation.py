"""
Booking Cost Calculator

Computes the price of one booking request against a product's pricing config.

Calculation steps:
1. base cost / base block cost = product values + selected resource values
2. person costs: base costs go to the booking base (or a separate pool in
   multiplier mode), block costs are added to every block
3. blocks booked = requested duration (fixed durations round up to whole blocks)
4. day-based products must not touch a buffer day
5. every block starts at the base block cost and is folded through the cost rules
6. blocks with an override have their base block cost replaced by the override
7. final = max(0, blocks + base); multiplier mode multiplies by total persons
   and adds the person costs once
8. an adjustment hook may replace the final number

Each call owns its own CalculationState; nothing is shared between calls.
"""

import math
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from ..config import settings
from ..errors import UnresolvedReferenceError, ValidationError
from ..models.booking import BookingRequest
from ..models.money import ZERO
from ..models.pricing import BookableProduct, DurationUnit, PricingConfig
from ..utils.logging_config import get_logger
from .booking_blocks import block_calendar_days, iter_booking_blocks
from .cost_rules import CalculationState, CostRuleEvaluator, EvaluationContext

logger = get_logger(__name__)


def _default_apply_multiple_rules(product: BookableProduct) -> bool:
    return settings.apply_multiple_rules_per_block


def _keep_calculated_cost(cost: Decimal, product: BookableProduct, request: BookingRequest) -> Decimal:
    return cost


AvailabilityCheck = Callable[[BookingRequest, BookableProduct], None]


@dataclass(frozen=True)
class PricingHooks:
    """
    Extension points of the calculator.

    apply_multiple_rules_per_block: return False to stop rule evaluation for a
        block after the first matching rule.
    adjust_calculated_cost: receives the final cost, product and request; its
        return value is what calculate() returns. Runs once per calculation.
    """
    apply_multiple_rules_per_block: Callable[[BookableProduct], bool] = _default_apply_multiple_rules
    adjust_calculated_cost: Callable[[Decimal, BookableProduct, BookingRequest], Decimal] = _keep_calculated_cost


@dataclass
class _PersonCosts:
    base: Decimal = ZERO        # Added to the booking base cost
    pooled_base: Decimal = ZERO  # Kept apart in multiplier mode
    block: Decimal = ZERO       # Added to every block


class BookingCostCalculator:
    """
    Block-by-block booking cost calculation.

    Usage:
        calculator = BookingCostCalculator()
        cost = calculator.calculate(request, product, pricing)
    """

    def __init__(
        self,
        hooks: Optional[PricingHooks] = None,
        availability_check: Optional[AvailabilityCheck] = None,
        today: Optional[datetime] = None
    ):
        self.hooks = hooks or PricingHooks()
        self.availability_check = availability_check
        self.today = today

    def current_year(self) -> int:
        if self.today is not None:
            return self.today.year
        return datetime.now(ZoneInfo(settings.timezone)).year

    def resolve_blocks_booked(
        self,
        request: BookingRequest,
        product: BookableProduct,
        pricing: PricingConfig
    ) -> int:
        """Number of blocks to iterate for this request"""
        requested = request.duration if request.duration is not None else product.min_duration
        if pricing.is_fixed_duration:
            return math.ceil(requested / pricing.block_duration)
        return requested

    def calculate(
        self,
        request: BookingRequest,
        product: BookableProduct,
        pricing: PricingConfig
    ) -> Decimal:
        """
        Calculate the cost of a booking.

        Raises:
            AvailabilityError: from the availability check, unchanged
            ValidationError: the booking touches a buffer day
            UnresolvedReferenceError: unknown resource or person type
            InvalidConfigError: malformed rule data (e.g. divide by zero)
        """
        started = time.perf_counter()

        if self.availability_check is not None:
            self.availability_check(request, product)

        state = CalculationState(base_cost=pricing.base_cost)
        base_block_cost = pricing.base_block_cost

        if request.resource_id is not None:
            resource = product.resources.get(request.resource_id)
            if resource is None:
                raise UnresolvedReferenceError("resource", request.resource_id)
            base_block_cost += resource.block_cost
            state.base_cost += resource.base_cost

        person_costs = self._person_costs(request, product, pricing)
        state.base_cost += person_costs.base

        blocks_booked = self.resolve_blocks_booked(request, product, pricing)
        self._check_buffer_days(request, pricing, blocks_booked)

        context = EvaluationContext(
            duration_unit=pricing.block_duration_unit,
            current_year=self.current_year(),
            total_persons=request.total_persons if request.has_persons else None,
            requested_duration=request.duration or None,
            apply_multiple_rules=self.hooks.apply_multiple_rules_per_block(product),
        )
        evaluator = CostRuleEvaluator(context, state)

        for block in iter_booking_blocks(
            request.start,
            blocks_booked,
            pricing.block_duration,
            pricing.block_duration_unit
        ):
            if person_costs.block > 0 and pricing.has_person_cost_multiplier:
                block_cost = base_block_cost
            else:
                block_cost = base_block_cost + person_costs.block

            block_cost = evaluator.evaluate_block(block, block_cost, pricing.cost_rules)
            state.total_block_cost += block_cost
            state.total_person_block_cost += person_costs.block

        for override in state.overrides.values():
            state.total_block_cost = state.total_block_cost - base_block_cost + override

        cost = max(ZERO, state.total_block_cost + state.base_cost)

        if request.has_persons and pricing.has_person_cost_multiplier:
            # The multiplier applies to the booking cost, not to person costs
            cost = cost * request.total_persons + max(
                ZERO, state.total_person_block_cost + person_costs.pooled_base
            )

        cost = self.hooks.adjust_calculated_cost(cost, product, request)

        logger.cost_calculated(
            product_id=product.id,
            blocks_booked=blocks_booked,
            cost=cost,
            overrides=len(state.overrides),
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
        )
        return cost

    def _person_costs(
        self,
        request: BookingRequest,
        product: BookableProduct,
        pricing: PricingConfig
    ) -> _PersonCosts:
        costs = _PersonCosts()
        if not request.has_persons or not product.has_person_types:
            return costs

        for person_id, count in request.person_counts.items():
            person_type = product.person_types.get(person_id)
            if person_type is None:
                raise UnresolvedReferenceError("person_type", person_id)
            if count <= 0:
                continue
            if person_type.base_cost > 0:
                if pricing.has_person_cost_multiplier:
                    costs.pooled_base += person_type.base_cost * count
                else:
                    costs.base += person_type.base_cost * count
            if person_type.block_cost > 0:
                costs.block += person_type.block_cost * count
        return costs

    def _check_buffer_days(
        self,
        request: BookingRequest,
        pricing: PricingConfig,
        blocks_booked: int
    ):
        unit = pricing.block_duration_unit
        if not pricing.has_buffer_period or unit.is_intraday:
            return

        for index in range(blocks_booked):
            first_day, last_day = block_calendar_days(
                request.start, index, pricing.block_duration, unit
            )
            if first_day in pricing.buffer_days or last_day in pricing.buffer_days:
                min_days = pricing.block_duration
                if unit == DurationUnit.WEEK:
                    min_days = pricing.block_duration * 7
                logger.info(
                    f"Booking starting {request.start.isoformat()} touches a buffer day "
                    f"(block {index})"
                )
                raise ValidationError.duration_too_short(min_days)


def get_cost_calculator() -> BookingCostCalculator:
    """Factory function to get a cost calculator instance"""
    return BookingCostCalculator()
