"""Retry decorator with exponential backoff for CloudAPI reads.

Only idempotent calls are decorated; creates and deletes go out once.

Example:
    from nodeward.infra.retry import on_status_code, retry

    @retry(on=on_status_code(429, 503), max_attempts=3)
    async def list_networks(self):
        ...
"""

from __future__ import annotations

import asyncio
import functools
import random
from collections.abc import Awaitable, Callable

from nodeward.observability.logger import logger

type RetryPredicate = Callable[[Exception], bool]
type RetryOn = type[Exception] | tuple[type[Exception], ...] | RetryPredicate


def _as_predicate(on: RetryOn) -> RetryPredicate:
    match on:
        case type() | tuple():
            return lambda e: isinstance(e, on)
        case predicate:
            return predicate


def _backoff(
    attempt: int,
    base_delay: float,
    exponential_base: float,
    max_delay: float,
    jitter: bool,
) -> float:
    delay = min(base_delay * exponential_base**attempt, max_delay)
    return delay + random.uniform(0, delay * 0.1) if jitter else delay


def retry[**P, T](
    on: RetryOn = Exception,
    max_attempts: int = 5,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float = 60.0,
    jitter: bool = True,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry an async function with exponential backoff.

    Args:
        on: An exception class, a tuple of classes, or a predicate over the
            raised exception.
        max_attempts: Attempts including the first one.
        base_delay: Delay before the first retry, in seconds.
        exponential_base: Growth factor of the delay per attempt.
        max_delay: Upper bound on a single delay.
        jitter: Add up to 10% random delay.
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
                    delay = _backoff(attempt - 1, base_delay, exponential_base, max_delay, jitter)
                    logger.warning(
                        "{fn} failed with {error} (attempt {attempt}/{total}), retrying in {delay:.1f}s",
                        fn=func.__qualname__,
                        error=e,
                        attempt=attempt,
                        total=max_attempts,
                        delay=delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator


def on_status_code(*codes: int) -> RetryPredicate:
    """Retry when the raised exception carries one of the given HTTP statuses.

    Matches HttpError and any provider error exposing a ``status`` attribute.
    """

    def predicate(e: Exception) -> bool:
        return getattr(e, "status", None) in codes

    return predicate
