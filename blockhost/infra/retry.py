"""Backoff decorator for provider API calls and SSH connects.

Creates are retried only on rate limiting, since a transport failure after
the request left may already have created the resource. Reads are also
retried on transport failures.

Example:
    from blockhost.infra.retry import READ_RETRYABLE, retry

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def list_servers():
        ...
"""

from __future__ import annotations

import asyncio
import functools
import random
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from loguru import logger

P = ParamSpec("P")
T = TypeVar("T")

type RetryPredicate = Callable[[Exception], bool]

_log = logger.bind(component="retry")


# ─── Predicates ──────────────────────────────────────────────────────


def on_status_code(*codes: int) -> RetryPredicate:
    """Match exceptions whose ``status`` attribute is one of ``codes``."""

    def predicate(e: Exception) -> bool:
        return getattr(e, "status", None) in codes

    return predicate


def on_transport_error(e: Exception) -> bool:
    """Match ``HttpError``-style failures that never got an HTTP status."""
    return getattr(e, "status", None) == 0


def any_of(*predicates: RetryPredicate) -> RetryPredicate:
    def combined(e: Exception) -> bool:
        return any(p(e) for p in predicates)

    return combined


RATE_LIMITED = on_status_code(429, 503)
READ_RETRYABLE = any_of(RATE_LIMITED, on_transport_error)


# ─── Decorator ───────────────────────────────────────────────────────


def _as_predicate(on: type[Exception] | tuple[type[Exception], ...] | RetryPredicate) -> RetryPredicate:
    match on:
        case type() | tuple():
            return lambda e: isinstance(e, on)
        case _:
            return on


def _backoff(
    e: Exception, attempt: int, *, base_delay: float, exponential_base: float, max_delay: float, jitter: bool,
) -> float:
    """Seconds to sleep before the next attempt.

    A server ``retry_after`` hint wins over the computed delay, capped at
    ``max_delay``.
    """
    hint = getattr(e, "retry_after", None)
    if hint is not None:
        return min(float(hint), max_delay)
    delay = min(base_delay * (exponential_base**attempt), max_delay)
    if jitter:
        delay += random.uniform(0, delay * 0.1)
    return delay


def retry(
    on: type[Exception] | tuple[type[Exception], ...] | RetryPredicate = Exception,
    max_attempts: int = 5,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float = 60.0,
    jitter: bool = True,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry an async function with exponential backoff.

    Args:
        on: Exception class, tuple of classes, or predicate selecting
            which failures get another attempt.
        max_attempts: Total attempts including the first.
        base_delay: Delay before the first retry, in seconds.
        exponential_base: Growth factor per attempt (1.0 for a fixed delay).
        max_delay: Upper bound for any single delay.
        jitter: Add up to 10% random delay.

    Returns:
        A decorator; the last failure is re-raised unchanged.
    """
    should_retry = _as_predicate(on)

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    attempt += 1
                    if attempt >= max_attempts or not should_retry(e):
                        raise
                    delay = _backoff(
                        e, attempt - 1,
                        base_delay=base_delay,
                        exponential_base=exponential_base,
                        max_delay=max_delay,
                        jitter=jitter,
                    )
                    _log.warning(
                        "{fn} failed ({err}), attempt {n}/{total}, retrying in {delay:.1f}s",
                        fn=func.__qualname__, err=e, n=attempt, total=max_attempts, delay=delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
