"""
Retry policy for remote fetches.

Only TransientFetchError is retried. ObjectNotFound, BackendUnavailable and
any unexpected exception stop the loop on the attempt that raised them.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from gateway.errors import RemoteFetchFailed, TransientFetchError
from gateway.storage.core import FetchAttempt, FetchOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


async def with_retry(
    attempt_fn: Callable[[], Awaitable[T]],
    key: str,
    max_attempts: int = 3,
    backoff_seconds: float = 3.0,
    sleep: Optional[SleepFn] = None,
) -> T:
    """
    Run attempt_fn until it succeeds, fails terminally, or attempts run out.

    Args:
        attempt_fn: Coroutine factory performing one attempt
        key: Object key, for logs and error reporting
        max_attempts: Upper bound on attempts (>= 1)
        backoff_seconds: Fixed delay between attempts, never after the last
        sleep: Sleep coroutine, replaceable in tests

    Returns:
        Whatever attempt_fn returned on its successful attempt

    Raises:
        RemoteFetchFailed: If every attempt raised TransientFetchError
    """
    attempts: List[FetchAttempt] = []
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_fixed(backoff_seconds),
        retry=retry_if_exception_type(TransientFetchError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep or asyncio.sleep,
    )

    try:
        async for attempt in retrying:
            with attempt:
                number = attempt.retry_state.attempt_number
                try:
                    result = await attempt_fn()
                except TransientFetchError as e:
                    attempts.append(FetchAttempt(key, number, FetchOutcome.TRANSIENT_FAILURE, str(e)))
                    logger.warning(f"[retry] {key} attempt {number}/{max_attempts} failed: {e}")
                    raise
                except Exception as e:
                    attempts.append(FetchAttempt(key, number, FetchOutcome.TERMINAL_FAILURE, str(e)))
                    logger.error(f"[retry] {key} attempt {number} failed terminally: {e}")
                    raise
                attempts.append(FetchAttempt(key, number, FetchOutcome.SUCCESS))
    except RetryError as e:
        last_error = e.last_attempt.exception()
        raise RemoteFetchFailed(
            f"Failed to fetch {key} after {len(attempts)} attempts: {last_error}",
            key=key,
            attempts=attempts,
        ) from last_error

    return result


@dataclass
class RetryPolicy:
    """Retry settings bound together for reuse by the resolver."""

    max_attempts: int = 3
    backoff_seconds: float = 3.0
    sleep: Optional[SleepFn] = None

    async def run(self, attempt_fn: Callable[[], Awaitable[T]], key: str) -> T:
        return await with_retry(
            attempt_fn,
            key=key,
            max_attempts=self.max_attempts,
            backoff_seconds=self.backoff_seconds,
            sleep=self.sleep,
        )
