from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import time
import uuid

from .config import settings
from .errors import (
    AvailabilityError,
    CostCalculationError,
    InvalidConfigError,
    UnresolvedReferenceError,
    ValidationError,
)
from .utils.logging_config import clear_request_context, get_logger, set_request_context, setup_logging
from .utils.rate_limiter import limiter
from .services.rule_builder import invalid_config_error
from .routers import health, pricing

logger = get_logger("bookcalc.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(level=settings.log_level, json_format=settings.log_json)
    logger.info(f"Starting bookcalc ({settings.environment})")
    logger.info(f"CORS Origins: {settings.cors_origins}")
    yield
    logger.info("Shutting down bookcalc")


# Create FastAPI app
app = FastAPI(
    title="bookcalc - Booking Cost API",
    description="Cost calculation for time-block bookings",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiter state
app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# Request ID Middleware
class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.api_request(
                request.method,
                request.url.path,
                response.status_code,
                round((time.perf_counter() - started) * 1000, 2)
            )
            return response
        finally:
            clear_request_context()


# Add other middleware AFTER CORS
app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


# ================================
# ERROR HANDLERS
# ================================

ERROR_STATUS = {
    ValidationError: 422,
    AvailabilityError: 422,
    InvalidConfigError: 400,
    UnresolvedReferenceError: 404,
}


@app.exception_handler(CostCalculationError)
async def cost_error_handler(request: Request, exc: CostCalculationError):
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        400
    )
    if isinstance(exc, InvalidConfigError):
        logger.warning(f"Invalid pricing configuration: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Snapshot sections of a request body; schema errors there are config errors
CONFIG_SECTIONS = {"pricing": "pricing config", "product": "product"}


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    config_errors = [
        {**error, "loc": tuple(error["loc"][1:])}
        for error in exc.errors()
        if len(error["loc"]) > 1
        and error["loc"][0] == "body"
        and error["loc"][1] in CONFIG_SECTIONS
    ]
    if not config_errors:
        return await request_validation_exception_handler(request, exc)

    sections = sorted({CONFIG_SECTIONS[error["loc"][0]] for error in config_errors})
    error = invalid_config_error(" and ".join(sections), config_errors)
    return JSONResponse(status_code=ERROR_STATUS[InvalidConfigError], content=error.to_dict())


# Rate limit handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests, try again later"}
    )


# Include routers
app.include_router(pricing.router)
app.include_router(health.router)


@app.get("")
@app.get("/")
async def root():
    return {
        "message": "bookcalc booking cost API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "running"
    }


@app.get("/health")
@app.get("/health/")
async def health_check():
    return {"status": "healthy"}
