"""
Display Cost Estimator

Computes the "starting from" price shown before a booking request exists.

No blocks are walked and no cost rules are evaluated. The estimate combines:
- base cost + minimum-duration block cost
- the cheapest resource
- the cheapest person type (or the declared person minimums)

Person multiplier products multiply by the minimum person count, the same
way the full calculator multiplies by the booked person count.
"""

from decimal import Decimal
from typing import Dict, Optional

from ..models.money import ZERO
from ..models.pricing import BookableProduct, PricingConfig


def cheapest_resource_cost(product: BookableProduct, min_duration: int) -> Decimal:
    """Cheapest resource for the minimum duration, 0 when there are none"""
    costs = [
        resource.block_cost * min_duration + resource.base_cost
        for resource in product.resources.values()
    ]
    return min(costs) if costs else ZERO


def estimate_display_cost(product: BookableProduct, pricing: PricingConfig) -> Decimal:
    if product.display_cost is not None:
        return product.display_cost

    min_duration = product.min_duration
    display_cost = pricing.base_block_cost * min_duration + pricing.base_cost
    resource_cost = cheapest_resource_cost(product, min_duration)
    multiplier = pricing.has_person_cost_multiplier

    cheapest: Optional[Decimal] = None
    declared_total = ZERO
    declared_count = 0
    has_declared_minimum = False

    if product.has_person_types:
        for person in product.person_types.values():
            if person.min is None:
                minimum = product.min_persons
            else:
                minimum = person.min
                has_declared_minimum = True

            cost = (person.block_cost * min_duration + person.base_cost) * minimum
            if person.min is not None:
                declared_total += cost
                declared_count += person.min
            if cheapest is None or cost < cheapest:
                cheapest = cost

        if not multiplier:
            display_cost += cheapest or ZERO

    if product.has_person_types and multiplier:
        persons_count = declared_count if declared_count else product.min_persons
        persons_total = declared_total if has_declared_minimum else (cheapest or ZERO)
        return (display_cost + persons_total) * persons_count + resource_cost * persons_count

    if product.has_persons and product.min_persons > 1 and multiplier:
        return (display_cost + resource_cost) * product.min_persons

    return display_cost + resource_cost


def person_minimums(product: BookableProduct) -> Dict[str, int]:
    """Minimum count per person type as used by the estimate"""
    return {
        person_id: person.min if person.min is not None else product.min_persons
        for person_id, person in product.person_types.items()
    }
