"""
FastAPI application factory.

* Registers routes for reservations, trips, wallet and admin.
* Starts / stops the background reservation sweeper via lifespan events.
* Applies rate limiting and maps handler failures to ``{"code", "message"}``.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from wheelshare.api.errors import ApiError, api_error_handler
from wheelshare.api.middleware import limiter
from wheelshare.api.routes import admin, reservations, trips, wallet
from wheelshare.infrastructure.redis_client import close_redis
from wheelshare.workers import sweeper as _sweeper

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the reservation sweeper on startup; stop it on shutdown."""
    await _sweeper.start_sweeper()
    yield
    await _sweeper.stop_sweeper()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="WheelShare API",
        description=(
            "Reserve a shared bike or scooter, ride it on a metered trip "
            "and pay from the wallet with credit-card fallback."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Business failures
    app.add_exception_handler(ApiError, api_error_handler)

    # Routers
    app.include_router(reservations.router, prefix="/api/v1")
    app.include_router(trips.router, prefix="/api/v1")
    app.include_router(wallet.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
