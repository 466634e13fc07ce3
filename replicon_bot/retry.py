"""
Retry with exponential backoff, and a circuit breaker.

Transient failures (timeouts, dropped connections, navigation errors)
are retried with exponentially growing delays plus random jitter. The
circuit breaker counts consecutive failures and fails fast once a
threshold is reached, until a cooldown has elapsed.
"""

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar, Union

from .logging_utils import get_logger


T = TypeVar('T')

TRANSIENT_INDICATORS = [
    'timeout',
    'timed out',
    'network',
    'econnreset',
    'econnrefused',
    'connection reset',
    'connection refused',
    'socket hang up',
    'navigation',
    'net::',
]


def is_transient_error(error: Union[BaseException, str]) -> bool:
    """
    Determine if a failure is worth retrying.

    Args:
        error: Exception or error message

    Returns:
        True if the message looks like a timeout or network failure

    Examples:
        >>> is_transient_error("Timeout 30000ms exceeded")
        True
        >>> is_transient_error("Element not found")
        False
    """
    message = str(error).lower()
    return any(indicator in message for indicator in TRANSIENT_INDICATORS)


@dataclass
class RetryPolicy:
    """
    Backoff settings.

    Attributes:
        max_attempts: Total attempts including the first one
        initial_delay: Delay before the first retry (seconds)
        max_delay: Upper bound for the base delay (seconds)
        multiplier: Growth factor between retries
        jitter: Maximum extra delay as a fraction of the base delay
    """
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: float = 0.3

    def base_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based), without jitter."""
        delay = self.initial_delay * (self.multiplier ** (attempt - 1))
        return min(delay, self.max_delay)

    def compute_delay(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """Delay before retry number ``attempt`` (1-based), with jitter."""
        base = self.base_delay(attempt)
        return base + rng() * self.jitter * base


NETWORK_RETRY_POLICY = RetryPolicy(max_attempts=3, initial_delay=1.0, max_delay=10.0)


def call_with_retry(fn: Callable[[], T],
                    policy: Optional[RetryPolicy] = None,
                    retry_if: Callable[[BaseException], bool] = is_transient_error,
                    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
                    sleep: Callable[[float], None] = time.sleep) -> T:
    """
    Call ``fn`` until it succeeds, retrying failures accepted by ``retry_if``.

    Args:
        fn: Callable to run
        policy: Backoff settings
        retry_if: Predicate deciding whether an exception is retried
        on_retry: Called with (attempt, error, delay) before sleeping
        sleep: Sleep function (injectable for tests)

    Returns:
        The value returned by ``fn``

    Raises:
        The last exception when attempts are exhausted or not retryable
    """
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return fn()
        except Exception as e:
            if attempt >= policy.max_attempts or not retry_if(e):
                raise
            delay = policy.compute_delay(attempt)
            if on_retry is not None:
                on_retry(attempt, e, delay)
            sleep(delay)
            attempt += 1


async def async_call_with_retry(fn: Callable[[], Awaitable[T]],
                                policy: Optional[RetryPolicy] = None,
                                retry_if: Callable[[BaseException], bool] = is_transient_error,
                                on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
                                sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> T:
    """Coroutine version of call_with_retry."""
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return await fn()
        except Exception as e:
            if attempt >= policy.max_attempts or not retry_if(e):
                raise
            delay = policy.compute_delay(attempt)
            if on_retry is not None:
                on_retry(attempt, e, delay)
            await sleep(delay)
            attempt += 1


class CircuitOpenError(Exception):
    """Raised when the circuit breaker rejects a call."""
    pass


class CircuitBreaker:
    """
    Tracks consecutive failures and fails fast after a threshold.

    States:
        closed: calls pass through
        open: calls are rejected until ``reset_timeout`` has elapsed
        half-open: one trial call is allowed; success closes, failure reopens
    """

    CLOSED = 'closed'
    OPEN = 'open'
    HALF_OPEN = 'half-open'

    def __init__(self, threshold: int = 5, reset_timeout: float = 30.0,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize the breaker.

        Args:
            threshold: Consecutive failures that open the circuit
            reset_timeout: Cooldown in seconds before a trial call
            clock: Monotonic clock (injectable for tests)
        """
        self.threshold = threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self.failures = 0
        self.last_failure_time = 0.0
        self._state = self.CLOSED
        self.logger = get_logger('retry')

    @property
    def state(self) -> str:
        return self._state

    def allow(self) -> bool:
        """
        Check whether a call may proceed, moving open -> half-open
        once the cooldown has elapsed.
        """
        if self._state == self.OPEN:
            if self._clock() - self.last_failure_time >= self.reset_timeout:
                self._state = self.HALF_OPEN
                self.logger.debug("Circuit half-open, allowing a trial call")
                return True
            return False
        return True

    def record_success(self):
        self.failures = 0
        self._state = self.CLOSED

    def record_failure(self):
        self.failures += 1
        self.last_failure_time = self._clock()
        if self._state == self.HALF_OPEN or self.failures >= self.threshold:
            if self._state != self.OPEN:
                self.logger.warning(f"Circuit opened after {self.failures} consecutive failure(s)")
            self._state = self.OPEN

    def call(self, fn: Callable[[], T]) -> T:
        """
        Run ``fn`` through the breaker.

        Raises:
            CircuitOpenError: If the circuit is open
        """
        if not self.allow():
            raise CircuitOpenError("Circuit breaker is open")
        try:
            result = fn()
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result

    def reset(self):
        self.failures = 0
        self._state = self.CLOSED
