"""
FastAPI application factory.

* Registers routes for stops, buses, route stops, distance and admin.
* Owns the process-wide ``DistanceCalculator`` and journey-length cache.
* Starts / stops the segment backfill worker via lifespan events.
* Maps distance-layer exceptions to HTTP responses.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from transit_planner.api.middleware import limiter
from transit_planner.api.routes import admin, buses, distance, route_stops, stops
from transit_planner.config import settings
from transit_planner.domain.distance import DistanceCalculator
from transit_planner.domain.errors import (
    CoordinateValidationError,
    DataStoreError,
    DistanceError,
)
from transit_planner.workers import segment_backfill as _backfill

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the backfill worker on startup; stop it and close HTTP clients."""
    calculator: DistanceCalculator = app.state.distance_calculator
    if settings.backfill_enabled:
        await _backfill.start_backfill_loop(calculator)
    yield
    if settings.backfill_enabled:
        await _backfill.stop_backfill_loop()
    for strategy in (calculator.primary, calculator.fallback):
        aclose = getattr(strategy, "aclose", None)
        if aclose is not None:
            await aclose()


async def _coordinate_error(request: Request, exc: CoordinateValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _distance_error(request: Request, exc: DistanceError):
    logger.warning("Distance calculation failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


async def _datastore_error(request: Request, exc: DataStoreError):
    logger.error("Data store unavailable for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def create_app(calculator: Optional[DistanceCalculator] = None) -> FastAPI:
    app = FastAPI(
        title="Transit Planner API",
        description=(
            "Discovers bus stops near a location, finds buses connecting "
            "two stops and computes journey lengths, using road routing "
            "(OSRM) with a great-circle fallback."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.distance_calculator = calculator or DistanceCalculator.create_default(
        settings.osrm_base_url
    )
    app.state.journey_cache = {}

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors; handler lookup follows the exception MRO
    app.add_exception_handler(CoordinateValidationError, _coordinate_error)
    app.add_exception_handler(DistanceError, _distance_error)
    app.add_exception_handler(DataStoreError, _datastore_error)

    # Routers
    app.include_router(stops.router, prefix="/api/v1")
    app.include_router(buses.router, prefix="/api/v1")
    app.include_router(route_stops.router, prefix="/api/v1")
    app.include_router(distance.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
