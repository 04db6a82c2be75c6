"""
Health Check Endpoints

- /health/live - Liveness check (is process running)
- /health/ready - Readiness check (is the engine usable)
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status

from ..config import settings
from ..services.display_cost import estimate_display_cost
from ..models.pricing import BookableProduct, DurationUnit, PricingConfig

router = APIRouter(prefix="/health", tags=["Health"])


def get_engine_health() -> dict:
    """Price a tiny fixed product to make sure the engine imports and runs"""
    try:
        pricing = PricingConfig(
            base_cost=1,
            base_block_cost=1,
            block_duration=1,
            block_duration_unit=DurationUnit.DAY
        )
        cost = estimate_display_cost(BookableProduct(id="health"), pricing)
        return {"status": "up" if cost == 2 else "degraded"}
    except Exception as e:
        return {"status": "down", "error": str(e)[:100]}


@router.get("/live")
@router.get("/live/")
async def liveness_check():
    """
    Liveness probe - is the process running?
    Used by load balancers and orchestrators.
    """
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/ready")
@router.get("/ready/")
async def readiness_check():
    """
    Readiness probe - is the service ready to accept traffic?
    """
    engine_health = get_engine_health()

    if engine_health["status"] == "up":
        return {
            "status": "ready",
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={
            "status": "not_ready",
            "reason": "engine_unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )
