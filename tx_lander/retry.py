"""
Retry Module - bounded retry with backoff for one-shot RPC calls.

Used where a single request may be repeated blindly (e.g. fetching the
latest blockhash before a submission). Whether a failure is worth another
attempt is decided by ``RetryPolicy.retry_on``, which defaults to the
``is_recoverable`` flag of tx-lander errors. The submission loop keeps its
own fixed-interval policy and does not go through this module.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .exceptions import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")
Sleep = Callable[[float], Awaitable[Any]]


class RetryError(Exception):
    """Raised when an operation is given up on."""

    def __init__(
        self,
        message: str,
        last_exception: Optional[Exception] = None,
        attempts: int = 0,
        total_delay: float = 0.0,
    ):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts
        self.total_delay = total_delay


class RetryExhaustedError(RetryError):
    """Every allowed attempt failed with a retryable error."""
    pass


class NonRetryableError(RetryError):
    """An attempt failed with an error the policy does not retry."""
    pass


@dataclass
class RetryPolicy:
    """
    How often and how patiently to repeat a call.

    Attributes:
        max_attempts: Total number of calls, including the first
        base_delay: Delay after the first failure, in seconds
        max_delay: Upper bound for any single delay
        jitter: Maximum random spread as a fraction of the delay (0.0-1.0)
        retry_on: Predicate deciding whether a failure is retried
    """
    max_attempts: int = 3
    base_delay: float = 0.1
    max_delay: float = 5.0
    jitter: float = 0.0
    retry_on: Callable[[Exception], bool] = is_retryable

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if not 0 <= self.jitter <= 1:
            raise ValueError("jitter must be between 0 and 1")


class Backoff(ABC):

    @abstractmethod
    def raw_delay(self, failures: int, policy: RetryPolicy) -> float:
        """Delay after the ``failures``-th consecutive failure, before jitter."""

    def delay(self, failures: int, policy: RetryPolicy) -> float:
        value = min(self.raw_delay(failures, policy), policy.max_delay)
        if policy.jitter:
            value += random.uniform(-1, 1) * value * policy.jitter
        return max(0.0, min(value, policy.max_delay))


class ExponentialBackoff(Backoff):
    """base_delay, 2x, 4x, ... capped at max_delay"""

    def __init__(self, factor: float = 2.0):
        self.factor = factor

    def raw_delay(self, failures: int, policy: RetryPolicy) -> float:
        return policy.base_delay * self.factor ** (failures - 1)


class Retrier:
    """
    Runs an async callable until it succeeds or the policy gives up.

    Usage:
        retrier = Retrier(RetryPolicy(max_attempts=5))
        blockhash = await retrier.call(gateway.get_latest_blockhash)
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        backoff: Optional[Backoff] = None,
        on_retry: Optional[Callable[[int, Exception, float], None]] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self.backoff = backoff or ExponentialBackoff()
        self.on_retry = on_retry
        self._sleep = sleep

        self.attempts = 0
        self.total_delay = 0.0
        self.last_exception: Optional[Exception] = None

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        self.attempts = 0
        self.total_delay = 0.0
        name = getattr(func, "__name__", repr(func))

        while True:
            self.attempts += 1
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                self.last_exception = e

                if not self.policy.retry_on(e):
                    logger.error(f"{name} failed with non-retryable error: {e}")
                    raise NonRetryableError(
                        f"{name} failed: {e}", e, self.attempts, self.total_delay
                    ) from e

                if self.attempts >= self.policy.max_attempts:
                    logger.error(f"{name} failed after {self.attempts} attempts: {e}")
                    raise RetryExhaustedError(
                        f"{name} failed after {self.attempts} attempts",
                        e,
                        self.attempts,
                        self.total_delay,
                    ) from e

                delay = self.backoff.delay(self.attempts, self.policy)
                self.total_delay += delay
                logger.warning(
                    f"{name} attempt {self.attempts}/{self.policy.max_attempts} failed, "
                    f"retrying in {delay:.2f}s: {e}"
                )
                if self.on_retry:
                    self.on_retry(self.attempts, e, delay)
                await self._sleep(delay)
                continue

            if self.attempts > 1:
                logger.info(f"{name} succeeded after {self.attempts} attempts")
            return result


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args,
    policy: Optional[RetryPolicy] = None,
    backoff: Optional[Backoff] = None,
    sleep: Sleep = asyncio.sleep,
    **kwargs,
) -> T:
    return await Retrier(policy, backoff, sleep=sleep).call(func, *args, **kwargs)


__all__ = [
    "RetryError",
    "RetryExhaustedError",
    "NonRetryableError",
    "RetryPolicy",
    "Backoff",
    "ExponentialBackoff",
    "Retrier",
    "retry_async",
]
