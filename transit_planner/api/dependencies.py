"""FastAPI dependency injection helpers."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from transit_planner.domain.distance import DistanceCalculator
from transit_planner.infrastructure.database import async_session_factory
from transit_planner.infrastructure.repositories import (
    RouteStopRepository,
    StopRepository,
)
from transit_planner.services.bus_routes import BusRouteService
from transit_planner.services.stop_discovery import StopDiscoveryService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_distance_calculator(request: Request) -> DistanceCalculator:
    """Process-wide calculator created by the app factory."""
    return request.app.state.distance_calculator


def get_stop_discovery_service(
    db: AsyncSession = Depends(get_db),
    calculator: DistanceCalculator = Depends(get_distance_calculator),
) -> StopDiscoveryService:
    return StopDiscoveryService(calculator, StopRepository(db))


def get_bus_route_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
    calculator: DistanceCalculator = Depends(get_distance_calculator),
) -> BusRouteService:
    # journey cache outlives the request-scoped service
    return BusRouteService(
        RouteStopRepository(db), calculator, cache=request.app.state.journey_cache
    )
