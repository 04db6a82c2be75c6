"""
Pricing API Router

Endpoints for computing booking costs from a resolved product snapshot.
The caller resolves products, resources and person types; nothing is stored.
"""

from fastapi import APIRouter, Depends, Request

from ..schemas.pricing import (
    BookingCostRequest,
    BookingCostResponse,
    CostErrorResponse,
    DisplayCostRequest,
    DisplayCostResponse,
)
from ..services.cost_calculation import BookingCostCalculator, get_cost_calculator
from ..services.display_cost import estimate_display_cost, person_minimums
from ..utils.logging_config import set_product_context
from ..utils.rate_limiter import get_rate_limit, limiter

router = APIRouter(prefix="/api/pricing", tags=["Pricing"])

ERROR_RESPONSES = {
    400: {"model": CostErrorResponse, "description": "Invalid pricing configuration"},
    404: {"model": CostErrorResponse, "description": "Unknown resource or person type"},
    422: {"model": CostErrorResponse, "description": "Booking not allowed (buffer period, availability)"},
}


@router.post("/booking-cost", response_model=BookingCostResponse, responses=ERROR_RESPONSES)
@limiter.limit(get_rate_limit("booking_cost"))
async def calculate_booking_cost(
    request: Request,
    payload: BookingCostRequest,
    calculator: BookingCostCalculator = Depends(get_cost_calculator)
):
    """Calculate the total cost of a booking"""
    set_product_context(payload.product.id)

    product = payload.product.to_product()
    pricing = payload.pricing.to_config()
    booking = payload.booking.to_request()

    cost = calculator.calculate(booking, product, pricing)

    return BookingCostResponse(
        product_id=product.id,
        cost=cost,
        currency=pricing.currency,
        blocks_booked=calculator.resolve_blocks_booked(booking, product, pricing),
    )


@router.post("/display-cost", response_model=DisplayCostResponse, responses=ERROR_RESPONSES)
@limiter.limit(get_rate_limit("display_cost"))
async def get_display_cost(request: Request, payload: DisplayCostRequest):
    """Get the "starting from" price shown before a booking is formed"""
    set_product_context(payload.product.id)

    product = payload.product.to_product()
    pricing = payload.pricing.to_config()

    return DisplayCostResponse(
        product_id=product.id,
        display_cost=estimate_display_cost(product, pricing),
        currency=pricing.currency,
        person_minimums=person_minimums(product) if product.has_person_types else {},
    )
