"""
OSRM road-routing strategy.

Calls the routing service's table endpoint once per matrix request::

    GET {base_url}/table/v1/driving/{lng,lat;lng,lat;...}?annotations=distance,duration

Origins and destinations are sent as one coordinate list, so the service
returns an all-pairs matrix over ``n + m`` points; the origin x destination
block lives at rows ``[0, n)`` and columns ``[n, n + m)``.

Failure taxonomy (all raised, the calculator decides whether to recover):

* ``CoordinateValidationError`` -- before any network call
* ``RoutingTimeoutError``       -- whole request exceeded ``timeout`` (wall clock)
* ``RoutingNetworkError``       -- connection-level failure
* ``RoutingUpstreamError``      -- non-2xx status or non-``Ok`` code
* ``RoutingResponseError``      -- missing / malformed distance matrix
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Sequence
from typing import Any, Optional

import httpx

from transit_planner.config import settings
from transit_planner.domain.distance import DistanceStrategy
from transit_planner.domain.entities import Coordinate, DistanceMatrix, DistanceResult
from transit_planner.domain.enums import OSRM_METHOD
from transit_planner.domain.errors import (
    CoordinateValidationError,
    RoutingNetworkError,
    RoutingResponseError,
    RoutingTimeoutError,
    RoutingUpstreamError,
)

logger = logging.getLogger(__name__)


def validate_coordinates(coords: Sequence[Coordinate]) -> None:
    """Raise ``CoordinateValidationError`` for the first bad coordinate."""
    for c in coords:
        if math.isnan(c.latitude) or math.isnan(c.longitude):
            raise CoordinateValidationError(
                f"Invalid coordinates: lat={c.latitude}, lng={c.longitude}"
            )
        if not -90 <= c.latitude <= 90:
            raise CoordinateValidationError(
                f"Invalid latitude: {c.latitude}. Must be between -90 and 90."
            )
        if not -180 <= c.longitude <= 180:
            raise CoordinateValidationError(
                f"Invalid longitude: {c.longitude}. Must be between -180 and 180."
            )


def _format_coordinates(coords: Sequence[Coordinate]) -> str:
    # OSRM expects lng,lat pairs
    return ";".join(f"{c.longitude},{c.latitude}" for c in coords)


class OSRMStrategy(DistanceStrategy):
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        probe_timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.osrm_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.probe_timeout = (
            probe_timeout
            if probe_timeout is not None
            else settings.osrm_probe_timeout_seconds
        )
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return OSRM_METHOD

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _table_url(self, coords: str) -> str:
        return f"{self.base_url}/table/v1/driving/{coords}"

    async def calculate_distances(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
    ) -> DistanceMatrix:
        validate_coordinates([*origins, *destinations])

        url = self._table_url(_format_coordinates([*origins, *destinations]))
        started = time.perf_counter()
        try:
            # httpx timeouts are per phase; wait_for bounds the whole exchange
            resp = await asyncio.wait_for(
                self._get_client().get(
                    url,
                    params={"annotations": "distance,duration"},
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RoutingTimeoutError(
                f"OSRM request timed out after {int(self.timeout * 1000)}ms"
            ) from exc
        except httpx.TransportError as exc:
            raise RoutingNetworkError(
                f"OSRM service is unreachable. Network error occurred: {exc}"
            ) from exc

        if not resp.is_success:
            raise RoutingUpstreamError(
                f"OSRM API error: {resp.status_code} {resp.reason_phrase}"
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise RoutingResponseError(
                "Invalid response format from OSRM service: body is not JSON"
            ) from exc

        matrix = self._parse_table(data, len(origins), len(destinations))
        logger.info(
            "OSRM table %dx%d latency=%.1fms",
            len(origins),
            len(destinations),
            (time.perf_counter() - started) * 1000,
        )
        return matrix

    def _parse_table(
        self, data: Any, origin_count: int, destination_count: int
    ) -> DistanceMatrix:
        if not isinstance(data, dict):
            raise RoutingResponseError("Invalid response format from OSRM service")

        code = data.get("code")
        if code not in ("Ok", "ok"):
            raise RoutingUpstreamError(
                f"OSRM API error: {data.get('message') or code}"
            )

        distances = data.get("distances")
        if not isinstance(distances, list) or not distances:
            raise RoutingResponseError("Invalid response format from OSRM service")
        durations = data.get("durations") or []

        results: DistanceMatrix = []
        for i in range(origin_count):
            row: list[DistanceResult] = []
            for j in range(destination_count):
                col = origin_count + j
                try:
                    meters = distances[i][col]
                except (IndexError, TypeError) as exc:
                    raise RoutingResponseError(
                        f"OSRM distance matrix is missing cell [{i}][{col}]"
                    ) from exc
                if meters is None:
                    raise RoutingResponseError(
                        f"OSRM found no route from origin {i} to destination {j}"
                    )
                row.append(
                    DistanceResult(
                        distance=float(meters) / 1000.0,
                        duration=_cell(durations, i, col),
                        method=self.name,
                    )
                )
            results.append(row)
        return results

    async def is_available(self) -> bool:
        """Same-point probe; any failure collapses to ``False``."""
        try:
            resp = await asyncio.wait_for(
                self._get_client().get(
                    self._table_url("0,0;0,0"),
                    params={"annotations": "distance"},
                    timeout=self.probe_timeout,
                ),
                timeout=self.probe_timeout,
            )
            return resp.is_success
        except Exception as exc:
            logger.debug("OSRM availability probe failed: %s", exc)
            return False


def _cell(matrix: list, i: int, j: int) -> float:
    try:
        value = matrix[i][j]
    except (IndexError, TypeError):
        return 0.0
    return float(value) if value is not None else 0.0
