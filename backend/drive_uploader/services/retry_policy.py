"""Retry policy for per-URL transfers.

Two pure pieces drive the loop:
  - should_retry(error) decides whether an error is transient.
  - backoff_delay(n) gives the wait before the n-th retry (1-based).

run_with_retry() walks the states attempting -> waiting -> attempting ...
until it ends in succeeded or exhausted. The sleep function is injected so
tests can record delays instead of waiting on real timers.
"""
import asyncio
import errno
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

import aiohttp

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 60.0  # seconds


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    EXHAUSTED = "exhausted"
    SUCCEEDED = "succeeded"


@dataclass
class RetryTrace:
    """What happened while retrying one unit of work."""
    state: RetryState = RetryState.ATTEMPTING
    attempts: int = 0
    delays: list[float] = field(default_factory=list)
    last_error: Optional[BaseException] = None

    @property
    def retries(self) -> int:
        return len(self.delays)


def error_status(error: BaseException) -> Optional[int]:
    """HTTP status carried by an error, if any."""
    status = getattr(error, "status", None)
    return status if isinstance(status, int) else None


def should_retry(error: BaseException) -> bool:
    """True for connection resets, timeouts and 429/5xx responses."""
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return True
    if isinstance(error, (ConnectionResetError, aiohttp.ServerDisconnectedError)):
        return True
    if isinstance(error, OSError) and error.errno in (errno.ECONNRESET, errno.ETIMEDOUT):
        return True
    return error_status(error) in TRANSIENT_STATUSES


def backoff_delay(
    retry_number: int,
    initial: float = DEFAULT_INITIAL_DELAY,
    maximum: float = DEFAULT_MAX_DELAY,
) -> float:
    """Seconds to wait before retry number `retry_number` (1-based). No jitter."""
    if retry_number < 1:
        raise ValueError("retry_number starts at 1")
    return min(initial * (2 ** (retry_number - 1)), maximum)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "operation",
    trace: Optional[RetryTrace] = None,
) -> T:
    """Run operation() with up to max_attempts tries total.

    Non-transient errors are re-raised immediately. The last error is
    re-raised once attempts are exhausted.
    """
    trace = trace if trace is not None else RetryTrace()
    while True:
        trace.state = RetryState.ATTEMPTING
        trace.attempts += 1
        try:
            result = await operation()
        except Exception as e:
            trace.last_error = e
            if not should_retry(e) or trace.attempts >= max_attempts:
                trace.state = RetryState.EXHAUSTED
                raise
            delay = backoff_delay(trace.retries + 1, initial_delay, max_delay)
            trace.state = RetryState.WAITING
            trace.delays.append(delay)
            logger.warning(
                "Retrying %s (attempt %d/%d) in %.1fs: %s",
                label, trace.attempts + 1, max_attempts, delay, e,
            )
            await sleep(delay)
            continue

        trace.state = RetryState.SUCCEEDED
        return result
