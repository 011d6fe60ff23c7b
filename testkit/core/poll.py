"""Bounded polling for eventually-consistent assertions."""

import time
from typing import Callable

from .logging import get_logger

logger = get_logger(__name__)


class PollTimeoutError(TimeoutError):
    """The condition did not become true within the budget."""


def poll_until(
    condition: Callable[[], bool],
    timeout: float,
    interval: float = 0.1,
    description: str = "condition"
) -> None:
    """Block until condition() is true or timeout seconds have passed.

    Args:
        condition: Predicate evaluated once per interval
        timeout: Overall wall-clock budget in seconds
        interval: Sleep between evaluations in seconds
        description: Used in the timeout message

    Raises:
        PollTimeoutError: If the budget is exceeded
    """
    start = time.monotonic()
    attempts = 0
    while True:
        attempts += 1
        if condition():
            return
        elapsed = time.monotonic() - start
        if elapsed > timeout:
            raise PollTimeoutError(
                f"timed out after {elapsed:.1f}s waiting for {description} ({attempts} attempts)"
            )
        logger.debug(f"{description} not met yet, retrying in {interval}s")
        time.sleep(interval)
