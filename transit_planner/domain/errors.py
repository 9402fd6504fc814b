"""
Exception hierarchy for the distance layer.

Strategy-level failures (``RoutingError`` subclasses) are recoverable by the
``DistanceCalculator`` through its fallback strategy.  Validation failures
are raised before any I/O and are never retried or recovered.
"""

from __future__ import annotations


class DistanceError(Exception):
    """Base class for every distance-calculation failure."""


class CoordinateValidationError(DistanceError, ValueError):
    """A coordinate is NaN or outside the latitude / longitude bounds."""


# ── Routing service failures ──────────────────────────────────────────


class RoutingError(DistanceError):
    """The road-routing service could not produce a matrix."""


class RoutingTimeoutError(RoutingError):
    pass


class RoutingNetworkError(RoutingError):
    pass


class RoutingUpstreamError(RoutingError):
    """Non-success HTTP status or a non-``Ok`` response code."""


class RoutingResponseError(RoutingError):
    """Response body is missing the distance matrix or is malformed."""


# ── Orchestration failures ────────────────────────────────────────────


class PrimaryUnavailableError(DistanceError):
    pass


class DistanceCalculationError(DistanceError):
    """Both the primary and the fallback strategy failed."""

    def __init__(
        self,
        primary_name: str,
        primary_error: BaseException,
        fallback_name: str,
        fallback_error: BaseException,
    ):
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        super().__init__(
            f"Distance calculation failed: primary strategy ({primary_name}) "
            f"error: {primary_error}; fallback strategy ({fallback_name}) "
            f"error: {fallback_error}"
        )


# ── Data store ────────────────────────────────────────────────────────


class DataStoreError(Exception):
    """A data-store operation failed after all retry attempts."""
