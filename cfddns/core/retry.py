"""Bounded retry loop with pluggable delay policies."""

import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Maps the 1-based number of the attempt that just failed to a delay in seconds
DelayPolicy = Callable[[int], float]


def constant(seconds: float) -> DelayPolicy:
    """Wait the same *seconds* after every failed attempt."""
    return lambda attempt: seconds


def linear(step: float) -> DelayPolicy:
    """Wait ``attempt * step`` seconds (progressive delay)."""
    return lambda attempt: attempt * step


def retry_call(
    func: Callable[[int], T],
    *,
    attempts: int,
    delay: DelayPolicy,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """Call ``func(attempt)`` until it returns, up to *attempts* times.

    Exceptions listed in *retry_on* trigger a sleep of ``delay(attempt)``
    and another attempt; anything else propagates immediately.  When the
    budget is exhausted the last exception is re-raised.  No sleep follows
    the final attempt.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return func(attempt)
        except retry_on as exc:
            if attempt == attempts:
                logger.debug("%s failed after %d attempts: %s", description, attempts, exc)
                raise
            wait = delay(attempt)
            logger.debug(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                description, attempt, attempts, wait, exc,
            )
            time.sleep(wait)

    raise AssertionError("unreachable")  # pragma: no cover
