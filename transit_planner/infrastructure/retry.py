"""
Retry-with-backoff for data-store calls.

Every repository read on the service path goes through ``with_retry``:
``attempts`` tries with an exponential schedule of ``base_delay * 2**n``
seconds (1 s, 2 s, 4 s ... with the defaults).  After the last attempt a
``DataStoreError`` carrying the final cause is raised.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    stop_after_attempt,
    wait_exponential,
)

from transit_planner.config import settings
from transit_planner.domain.errors import DataStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    description: str,
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run *operation* until it succeeds or *attempts* are exhausted.

    *description* names the operation in log lines and in the final error,
    e.g. ``"Failed to fetch stops"``.
    """
    attempts = attempts if attempts is not None else settings.datastore_retry_attempts
    base_delay = (
        base_delay
        if base_delay is not None
        else settings.datastore_retry_base_delay_seconds
    )

    def _log_retry(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        logger.warning(
            "%s (attempt %d/%d). Retrying in %.0fms: %s",
            description,
            state.attempt_number,
            attempts,
            delay * 1000,
            exc,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base_delay, min=base_delay),
        before_sleep=_log_retry,
        sleep=sleep,
    )
    try:
        return await retrying(operation)
    except RetryError as exc:
        cause = exc.last_attempt.exception()
        raise DataStoreError(
            f"{description} after {attempts} attempts: {cause}"
        ) from cause
