"""
FastAPI application factory.

* Registers routes for pricing, bookings, drivers and admin.
* Installs the pricing configuration store (in-process or Redis-backed).
* Maps business-rule and persistence errors to JSON responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from movenow.api.errors import register_error_handlers
from movenow.api.middleware import limiter
from movenow.api.routes import admin, bookings, drivers, pricing
from movenow.config import settings
from movenow.infrastructure.database import engine
from movenow.infrastructure.pricing_store import (
    InMemoryPricingConfigStore,
    PricingConfigStore,
    RedisPricingConfigStore,
)
from movenow.infrastructure.redis_client import get_redis

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def build_pricing_store() -> PricingConfigStore:
    if settings.pricing_config_backend == "redis":
        return RedisPricingConfigStore(get_redis(), key=settings.pricing_config_key)
    return InMemoryPricingConfigStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release pooled database connections on shutdown."""
    logger.info(
        "MoveNow API starting (pricing config backend: %s)",
        settings.pricing_config_backend,
    )
    yield
    await engine.dispose()


def create_app(pricing_store: Optional[PricingConfigStore] = None) -> FastAPI:
    app = FastAPI(
        title="MoveNow Moving Marketplace API",
        description=(
            "Prices moving jobs, lets customers book them and lets drivers "
            "find, accept and carry them out.  Job acceptance is safe under "
            "concurrent drivers and pricing can be changed live by admins."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.pricing_store = pricing_store or build_pricing_store()

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_error_handlers(app)

    # Routers
    app.include_router(pricing.router, prefix="/api/v1")
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(drivers.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
