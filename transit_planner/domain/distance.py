"""
Distance Calculation  (Strategy Pattern)
========================================

* **DistanceStrategy**   -- contract: distance matrix, availability, name.
* **HaversineStrategy**  -- great-circle distance, no I/O, always available.
* **DistanceCalculator** -- context holding a primary and a fallback
  strategy.  Road routing (OSRM) is the default primary, Haversine the
  default fallback.

Fallback policy
---------------
1. Probe ``primary.is_available()`` (fresh on every call, never cached).
2. Available   -> try primary; on failure try fallback (if enabled).
3. Unavailable -> go straight to fallback (if enabled), else fail.

Complexity: O(N x M) per matrix for Haversine.
"""

from __future__ import annotations

import inspect
import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Sequence
from typing import Optional

from .entities import Coordinate, DistanceMatrix, DistanceResult
from .enums import HAVERSINE_METHOD
from .errors import (
    CoordinateValidationError,
    DistanceCalculationError,
    PrimaryUnavailableError,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


# ── Strategy hierarchy ────────────────────────────────────────────────


class DistanceStrategy(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def calculate_distances(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
    ) -> DistanceMatrix:
        """Return a ``len(origins) x len(destinations)`` matrix."""

    @abstractmethod
    def is_available(self) -> bool | Awaitable[bool]: ...


class HaversineStrategy(DistanceStrategy):
    """Offline fallback; reports distance only (no travel time)."""

    @property
    def name(self) -> str:
        return HAVERSINE_METHOD

    async def calculate_distances(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
    ) -> DistanceMatrix:
        return [
            [
                DistanceResult(
                    distance=haversine_km(
                        o.latitude, o.longitude, d.latitude, d.longitude
                    ),
                    method=self.name,
                )
                for d in destinations
            ]
            for o in origins
        ]

    def is_available(self) -> bool:
        return True


# ── Context ───────────────────────────────────────────────────────────


class DistanceCalculator:
    """High-level API used by stop discovery and journey aggregation.

    Strategies can be swapped with the setters, but only between requests:
    the fields are not guarded against concurrent mutation.
    """

    def __init__(
        self,
        primary: Optional[DistanceStrategy] = None,
        fallback: Optional[DistanceStrategy] = None,
    ):
        if primary is None:
            from transit_planner.infrastructure.osrm import OSRMStrategy

            primary = OSRMStrategy()
        self._primary = primary
        self._fallback = fallback or HaversineStrategy()

    @classmethod
    def create_default(
        cls, osrm_base_url: Optional[str] = None
    ) -> "DistanceCalculator":
        from transit_planner.infrastructure.osrm import OSRMStrategy

        primary = OSRMStrategy(osrm_base_url) if osrm_base_url else OSRMStrategy()
        return cls(primary, HaversineStrategy())

    @property
    def primary(self) -> DistanceStrategy:
        return self._primary

    @property
    def fallback(self) -> DistanceStrategy:
        return self._fallback

    def set_primary_strategy(self, strategy: DistanceStrategy) -> None:
        self._primary = strategy

    def set_fallback_strategy(self, strategy: DistanceStrategy) -> None:
        self._fallback = strategy

    async def calculate_distances(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
        use_fallback_on_error: bool = True,
    ) -> DistanceMatrix:
        primary, fallback = self._primary, self._fallback

        if not await check_availability(primary):
            if not use_fallback_on_error:
                raise PrimaryUnavailableError(
                    f"Primary strategy ({primary.name}) is unavailable "
                    "and fallback is disabled"
                )
            logger.warning(
                "Primary strategy (%s) is not available, using %s",
                primary.name,
                fallback.name,
            )
            return await fallback.calculate_distances(origins, destinations)

        try:
            return await primary.calculate_distances(origins, destinations)
        except CoordinateValidationError:
            raise
        except Exception as primary_exc:
            logger.warning(
                "Primary strategy (%s) failed: %s", primary.name, primary_exc
            )
            if not use_fallback_on_error:
                raise

            logger.info("Falling back to %s strategy", fallback.name)
            try:
                return await fallback.calculate_distances(origins, destinations)
            except Exception as fallback_exc:
                raise DistanceCalculationError(
                    primary.name, primary_exc, fallback.name, fallback_exc
                ) from fallback_exc


async def check_availability(strategy: DistanceStrategy) -> bool:
    """Resolve ``is_available()`` whether it is sync or async."""
    availability = strategy.is_available()
    if inspect.isawaitable(availability):
        availability = await availability
    return bool(availability)
