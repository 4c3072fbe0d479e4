"""Retry helper for transactions aborted by concurrent writers.

Postgres aborts a whole transaction with a serialization failure or a deadlock
when two requests lock the same user and stat rows in a different order. The
decorated coroutine must open its own transaction so each attempt replays it
from the top.
"""

from __future__ import annotations

import asyncio
import functools
import random
import typing
from collections.abc import Awaitable, Callable
from logging import getLogger

from asyncpg.exceptions import DeadlockDetectedError, SerializationError

from utilities.errors import ConcurrencyConflictError

if typing.TYPE_CHECKING:
    from typing import ParamSpec, TypeVar

    P = ParamSpec("P")
    R = TypeVar("R")

log = getLogger(__name__)

RETRIABLE_ERRORS = (SerializationError, DeadlockDetectedError)
DEFAULT_ATTEMPTS = 3
INITIAL_BACKOFF_SECONDS = 0.05
MAX_BACKOFF_SECONDS = 1.0
JITTER_SECONDS = 0.05


def compute_backoff(attempt: int) -> float:
    """Exponential backoff for the given 1-based attempt, capped and jittered."""
    delay = min(INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1)), MAX_BACKOFF_SECONDS)
    return delay + random.uniform(0, JITTER_SECONDS)


def retry_on_conflict(
    attempts: int = DEFAULT_ATTEMPTS,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Retry a transactional coroutine on serialization failures and deadlocks.

    Args:
        attempts: Total number of attempts, including the first one.

    Returns:
        Decorator wrapping an async callable.

    Raises:
        ConcurrencyConflictError: When every attempt was aborted.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except RETRIABLE_ERRORS as e:
                    if attempt == attempts:
                        log.warning("%s gave up after %s attempts", func.__qualname__, attempts, exc_info=e)
                        raise ConcurrencyConflictError(func.__name__, attempts) from e
                    delay = compute_backoff(attempt)
                    log.info(
                        "%s aborted by %s on attempt %s, retrying in %.3fs",
                        func.__qualname__,
                        type(e).__name__,
                        attempt,
                        delay,
                    )
                    await asyncio.sleep(delay)
            raise AssertionError("unreachable")

        return wrapper

    return decorator
