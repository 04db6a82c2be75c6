"""
Shared builders for cost engine tests.
"""

import pytest
from datetime import datetime
from decimal import Decimal

from bookcalc.models.cost_rules import Adjustment, CostEffect, CostOperator
from bookcalc.models.pricing import BookableProduct, DurationType, DurationUnit, PricingConfig
from bookcalc.services.cost_calculation import BookingCostCalculator


def make_effect(block=None, base=None, override=None) -> CostEffect:
    """make_effect(block=("plus", 5), base=("times", 2), override=30)"""
    kwargs = {"override": override}
    if block is not None:
        kwargs["block"] = Adjustment(CostOperator(block[0]), Decimal(str(block[1])))
    if base is not None:
        kwargs["base"] = Adjustment(CostOperator(base[0]), Decimal(str(base[1])))
    return CostEffect(**kwargs)


@pytest.fixture
def make_pricing():
    """Pricing config factory: 1-day blocks, base 0, block 10 unless overridden"""
    def _make(**overrides) -> PricingConfig:
        values = dict(
            base_cost=0,
            base_block_cost=10,
            block_duration=1,
            block_duration_unit=DurationUnit.DAY,
            duration_type=DurationType.CUSTOMIZABLE,
        )
        values.update(overrides)
        return PricingConfig(**values)
    return _make


@pytest.fixture
def product():
    return BookableProduct(id="product-1", name="Meeting room")


@pytest.fixture
def calculator():
    """Calculator pinned to 2026 so recurring month folding is deterministic"""
    return BookingCostCalculator(today=datetime(2026, 1, 1))
