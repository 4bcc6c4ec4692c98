"""Deadline-bounded polling shared by instance readiness and action status.

Both suspension points of the orchestrator go through ``wait_for`` so that
timeouts and cancellation behave the same everywhere.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_delay,
    stop_never,
    wait_fixed,
)


class _PendingError(Exception):
    """Resource not yet in target state - retry."""


async def wait_for[T](
    poll: Callable[[], Awaitable[T]],
    ready: Callable[[T], bool],
    *,
    interval: float = 2.0,
    timeout: float | None = 600.0,
    description: str = "resource",
) -> T:
    """Poll until ``ready(poll())`` holds.

    Only the status check is repeated. Errors raised by ``poll`` itself are
    not retried and propagate unchanged. Cancelling the awaiting task stops
    the loop at its next suspension point.

    Args:
        poll: Async function fetching the current state.
        ready: Returns True once the state is the target one.
        interval: Seconds between checks.
        timeout: Deadline in seconds, None to wait indefinitely.
        description: Used in log and error messages.

    Returns:
        The first state that satisfied ``ready``.

    Raises:
        TimeoutError: If the deadline passes first.
    """
    log = logger.bind(component="wait")
    retrying = AsyncRetrying(
        stop=stop_after_delay(timeout) if timeout is not None else stop_never,
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(_PendingError),
    )

    try:
        async for attempt in retrying:
            with attempt:
                state = await poll()
                if ready(state):
                    return state
                log.debug(
                    "{description} not ready (attempt {n})",
                    description=description, n=attempt.retry_state.attempt_number,
                )
                raise _PendingError(description)
    except RetryError as e:
        raise TimeoutError(f"Timeout waiting for {description} after {timeout}s") from e

    raise AssertionError("unreachable")
