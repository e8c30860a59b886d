"""Readiness poller - bounded retry until a probe reports ready."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from android_session_proxy.errors import not_ready_error

logger = structlog.get_logger()

T = TypeVar("T")


async def poll_until_ready(
    probe: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    interval: float,
    is_ready: Callable[[T], bool] | None = None,
    operation: str = "readiness",
) -> T:
    """Invoke ``probe`` until it succeeds with a ready value.

    An attempt fails if the probe raises or if ``is_ready`` rejects its value.
    Failed attempts are followed by a sleep of ``interval`` seconds, except
    the last one.

    Args:
        probe: Zero-argument coroutine factory
        max_attempts: Upper bound on probe invocations
        interval: Seconds to wait between attempts
        is_ready: Predicate over the probe value; any value is ready if omitted
        operation: Name used in logs and in the not-ready error

    Returns:
        The first ready probe value

    Raises:
        Exception: The last probe failure once attempts are exhausted, or
            ProxyError(ERR_NOT_READY) if the last attempt returned an unready value
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            value = await probe()
        except Exception as exc:
            last_error = exc
            logger.debug(
                "readiness_attempt_failed",
                operation=operation,
                attempt=attempt,
                error=str(exc),
            )
        else:
            if is_ready is None or is_ready(value):
                logger.info("readiness_reached", operation=operation, attempts=attempt)
                return value
            last_error = None
            logger.debug("readiness_not_yet", operation=operation, attempt=attempt)

        if attempt < max_attempts:
            await asyncio.sleep(interval)

    logger.warning("readiness_exhausted", operation=operation, attempts=max_attempts)
    if last_error is not None:
        raise last_error
    raise not_ready_error(operation, max_attempts)
