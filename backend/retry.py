"""SafeRoute Backend — Rate-limit aware retry with exponential backoff

Only quota/throughput rejections are retried. Anything else (bad request,
network failure, missing key) propagates on the first attempt so the caller
can record the stage as missing and move on.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from google.api_core import exceptions as google_exceptions

from config import RATE_LIMIT_MARKERS, RETRY_INITIAL_DELAY, RETRY_MAX_JITTER, RETRY_MAX_RETRIES

logger = logging.getLogger("saferoute.retry")

T = TypeVar("T")

_RATE_LIMIT_TYPES = (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)


def is_rate_limited(exc: BaseException) -> bool:
    """True if ``exc`` carries a rate-limit signature (HTTP 429 / quota exhausted)."""
    if isinstance(exc, _RATE_LIMIT_TYPES):
        return True
    msg = str(exc).lower()
    return any(marker in msg for marker in RATE_LIMIT_MARKERS)


def backoff_delay(attempt: int, initial_delay: float, jitter: float = 0.0) -> float:
    """Delay before retry number ``attempt`` (1-based): initial * 2^(attempt-1) + jitter."""
    return initial_delay * (2 ** (attempt - 1)) + jitter


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = RETRY_MAX_RETRIES,
    delay: float = RETRY_INITIAL_DELAY,
    max_jitter: float = RETRY_MAX_JITTER,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
    label: str = "request",
) -> T:
    """Run ``operation`` with up to ``retries`` extra attempts on rate-limit failures.

    At most ``retries + 1`` attempts are made. The wait before retry *k* is
    ``delay * 2^(k-1)`` plus up to ``max_jitter`` seconds of random jitter.
    Non rate-limit failures, and the last rate-limit failure once the budget
    is spent, are re-raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if not is_rate_limited(e):
                raise
            if attempt >= retries:
                logger.error(f"Rate limit persisted for {label} after {attempt + 1} attempts")
                raise
            attempt += 1
            wait = backoff_delay(attempt, delay, rng() * max_jitter)
            logger.warning(f"Rate limit encountered on {label}. Retry {attempt}/{retries} in {wait:.2f}s")
            await sleep(wait)


@dataclass(frozen=True)
class RetryPolicy:
    """Bundled retry parameters so callers can share one policy across stages."""

    retries: int = RETRY_MAX_RETRIES
    initial_delay: float = RETRY_INITIAL_DELAY
    max_jitter: float = RETRY_MAX_JITTER
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)
    rng: Callable[[], float] = field(default=random.random, compare=False)

    async def call(self, operation: Callable[[], Awaitable[T]], label: str = "request") -> T:
        return await with_retry(
            operation,
            self.retries,
            self.initial_delay,
            self.max_jitter,
            sleep=self.sleep,
            rng=self.rng,
            label=label,
        )
