"""
Background Segment Backfill Worker
==================================

Runs every ``BACKFILL_INTERVAL_SECONDS`` (default 300 s) when enabled.

Fills ``route_stops.distance_to_next`` / ``duration_to_next`` for rows that
have a following stop but no stored distance, so journey-length requests
rarely need to compute segments on demand.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one instance runs a backfill
  cycle at a time across multiple API processes.

Algorithm per cycle
-------------------
1. Fetch up to ``BACKFILL_BATCH_SIZE`` (current, next) pairs with a NULL
   distance.
2. Compute each pair with the distance calculator (OSRM, Haversine
   fallback).
3. Store road-routing results.  Haversine results are stored only when
   ``BACKFILL_ACCEPT_FALLBACK`` is set; their duration is estimated from
   ``AVERAGE_BUS_SPEED_KMH``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from transit_planner.config import settings
from transit_planner.domain.distance import DistanceCalculator
from transit_planner.domain.enums import OSRM_METHOD
from transit_planner.infrastructure.database import async_session_factory
from transit_planner.infrastructure.locks import DistributedLock
from transit_planner.infrastructure.redis_client import get_redis
from transit_planner.infrastructure.repositories import RouteStopRepository

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_backfill_loop(calculator: DistanceCalculator) -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop(calculator))
    logger.info(
        "Segment backfill worker started (interval=%ds)",
        settings.backfill_interval_seconds,
    )


async def stop_backfill_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Segment backfill worker stopped")


def estimate_duration_seconds(
    distance_km: float, speed_kmh: Optional[float] = None
) -> float:
    speed = speed_kmh or settings.average_bus_speed_kmh
    return round(distance_km / speed * 3600)


async def backfill_missing_segments(
    repo: RouteStopRepository,
    calculator: DistanceCalculator,
    limit: Optional[int] = None,
    accept_fallback: Optional[bool] = None,
) -> int:
    """Compute and store missing segment distances.  Returns rows updated."""
    limit = limit or settings.backfill_batch_size
    if accept_fallback is None:
        accept_fallback = settings.backfill_accept_fallback

    pairs = await repo.get_missing_distance_pairs(limit)
    updated = 0
    for current, nxt in pairs:
        if current.coordinate is None or nxt.coordinate is None:
            logger.warning(
                "Skipping bus %s stop_order %d: missing stop coordinates",
                current.bus_id,
                current.stop_order,
            )
            continue
        try:
            matrix = await calculator.calculate_distances(
                [current.coordinate], [nxt.coordinate]
            )
        except Exception as exc:
            logger.warning(
                "Backfill failed for bus %s stop_order %d: %s",
                current.bus_id,
                current.stop_order,
                exc,
            )
            continue

        result = matrix[0][0]
        if result.method == OSRM_METHOD:
            duration = result.duration
        elif accept_fallback:
            duration = estimate_duration_seconds(result.distance)
        else:
            logger.debug(
                "Not storing %s estimate for bus %s stop_order %d",
                result.method,
                current.bus_id,
                current.stop_order,
            )
            continue

        updated += await repo.update_segment_distance(
            current.bus_id,
            current.direction,
            current.stop_order,
            result.distance,
            duration,
        )
    return updated


# ── Internals ─────────────────────────────────────────────────────────


async def _loop(calculator: DistanceCalculator) -> None:
    """Periodic loop: run a backfill cycle then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_backfill_cycle(calculator)
        except Exception:
            logger.exception("Unhandled error in backfill cycle")
        # Wait for the interval or until stop is signalled
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.backfill_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


async def run_backfill_cycle(calculator: DistanceCalculator) -> int:
    """Execute one backfill cycle.  Returns the number of rows updated."""
    redis = await get_redis()
    lock = DistributedLock(redis, "segment_backfill", ttl_seconds=600)

    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping cycle")
        return 0

    updated = 0
    try:
        async with async_session_factory() as session:
            repo = RouteStopRepository(session)
            updated = await backfill_missing_segments(repo, calculator)
            await session.commit()
            if updated:
                logger.info("Backfill cycle: %d segments updated", updated)
    except Exception:
        logger.exception("Error in backfill cycle")
    finally:
        await lock.release()

    return updated
