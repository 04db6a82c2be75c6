"""
Rate Limiter Configuration

Storage is chosen by RATE_LIMIT_STORAGE_URI: in-memory for development or a
single instance, Redis (redis://...) when several instances share limits.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import settings


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind reverse proxy"""
    # Check X-Forwarded-For header (set by proxies)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP (original client)
        return forwarded_for.split(",")[0].strip()

    # Check X-Real-IP header
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    # Fallback to direct connection
    return get_remote_address(request)


def create_limiter() -> Limiter:
    """Create a rate limiter with the configured storage backend."""
    return Limiter(
        key_func=get_real_client_ip,
        storage_uri=settings.rate_limit_storage_uri,
        default_limits=[settings.rate_limit_default]
    )


# Global rate limiter instance
limiter = create_limiter()


# ================================
# RATE LIMIT CONFIGURATIONS
# ================================

RATE_LIMITS = {
    # Full calculation walks every block - moderate limit
    "booking_cost": "120/minute",
    # Display estimate is cheap - relaxed limit
    "display_cost": "300/minute",
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a specific operation."""
    return RATE_LIMITS.get(operation, settings.rate_limit_default)
