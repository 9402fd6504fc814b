"""
Admin / observability endpoints
===============================

GET  /api/v1/admin/health               -- simple health check
GET  /api/v1/admin/distance-strategies  -- primary / fallback availability
POST /api/v1/admin/journey-cache/clear  -- drop memoised journey lengths
POST /api/v1/admin/segments/backfill    -- fill missing segment distances
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from transit_planner.api.dependencies import get_db, get_distance_calculator
from transit_planner.api.middleware import limiter
from transit_planner.api.schemas import (
    BackfillResponse,
    CacheClearedResponse,
    HealthResponse,
    StrategyStatus,
)
from transit_planner.domain.distance import DistanceCalculator, check_availability
from transit_planner.infrastructure.repositories import RouteStopRepository
from transit_planner.workers.segment_backfill import backfill_missing_segments

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/distance-strategies",
    response_model=list[StrategyStatus],
    summary="Report configured distance strategies and their availability",
)
@limiter.limit("30/minute")
async def distance_strategies(
    request: Request,
    calculator: DistanceCalculator = Depends(get_distance_calculator),
):
    return [
        StrategyStatus(
            role=role,
            name=strategy.name,
            available=await check_availability(strategy),
        )
        for role, strategy in (
            ("primary", calculator.primary),
            ("fallback", calculator.fallback),
        )
    ]


@router.post(
    "/journey-cache/clear",
    response_model=CacheClearedResponse,
    summary="Clear memoised journey lengths after route data changes",
)
async def clear_journey_cache(request: Request):
    cache = request.app.state.journey_cache
    cleared = len(cache)
    cache.clear()
    return CacheClearedResponse(cleared=cleared)


@router.post(
    "/segments/backfill",
    response_model=BackfillResponse,
    summary="Compute and store missing segment distances",
)
@limiter.limit("5/minute")
async def backfill_segments(
    request: Request,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    calculator: DistanceCalculator = Depends(get_distance_calculator),
):
    updated = await backfill_missing_segments(
        RouteStopRepository(db), calculator, limit=limit
    )
    if updated:
        # stored distances change journey totals
        request.app.state.journey_cache.clear()
    return BackfillResponse(updated=updated)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
