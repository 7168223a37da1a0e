"""Bounded retry with backoff, shared by embedding and upsert batches."""

import time
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from .config import config

logger = config.get_logger(__name__)

T = TypeVar("T")


def linear_backoff(base_seconds: float) -> wait_incrementing:
    """Wait ``base_seconds * n`` after the n-th failed attempt.

    Returns:
        A tenacity wait strategy.
    """
    return wait_incrementing(start=base_seconds, increment=base_seconds)


def _log_before_sleep(
    description: str, max_attempts: int
) -> Callable[[RetryCallState], None]:
    def _log(retry_state: RetryCallState) -> None:
        logger.warning(
            "%s failed (attempt %d/%d): %s; retrying in %.2fs",
            description,
            retry_state.attempt_number,
            max_attempts,
            retry_state.outcome.exception(),
            retry_state.next_action.sleep,
        )

    return _log


def retry_with_backoff(
    operation: Callable[[], T],
    *,
    max_attempts: int | None = None,
    backoff: wait_incrementing | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    description: str = "operation",
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` is reached.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates immediately. After the last failed attempt the error from that
    attempt is re-raised unchanged. There is no delay after the final attempt.

    Args:
        operation: Zero-argument callable to invoke.
        max_attempts: Total attempts, including the first. Defaults to
            config.RETRY_MAX_ATTEMPTS.
        backoff: Tenacity wait strategy. Defaults to linear backoff of
            config.RETRY_BACKOFF_SECONDS.
        retry_on: Exception types that trigger another attempt.
        sleep: Sleep function, injectable for tests.
        description: Label used in log messages.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.

    Raises:
        ValueError: If max_attempts is lower than 1.
    """
    if max_attempts is None:
        max_attempts = config.RETRY_MAX_ATTEMPTS
    if backoff is None:
        backoff = linear_backoff(config.RETRY_BACKOFF_SECONDS)
    if max_attempts < 1:
        msg = f"max_attempts must be at least 1, got {max_attempts}"
        raise ValueError(msg)

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=backoff,
        retry=retry_if_exception_type(retry_on),
        sleep=sleep,
        before_sleep=_log_before_sleep(description, max_attempts),
        reraise=True,
    )
    try:
        return retrying(operation)
    except retry_on:
        logger.exception("%s failed after %d attempts", description, max_attempts)
        raise
