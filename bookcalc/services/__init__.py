# Services package
from .cost_rules import CalculationState, CostRuleEvaluator, EvaluationContext, apply_cost
from .cost_calculation import BookingCostCalculator, PricingHooks, get_cost_calculator
from .display_cost import estimate_display_cost
from .buffer_days import find_buffer_days
from .rule_builder import build_cost_rules, build_pricing_config, build_product

__all__ = [
    "CalculationState", "CostRuleEvaluator", "EvaluationContext", "apply_cost",
    "BookingCostCalculator", "PricingHooks", "get_cost_calculator",
    "estimate_display_cost",
    "find_buffer_days",
    "build_cost_rules", "build_pricing_config", "build_product",
]
