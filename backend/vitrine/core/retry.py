# vitrine/core/retry.py

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx
from loguru import logger

T = TypeVar("T")


class CircuitOpenError(Exception):
    """Raised by CircuitBreaker.execute while the breaker rejects calls."""

    def __init__(self, message: str = "Circuit breaker is OPEN"):
        super().__init__(message)


def default_should_retry(error: BaseException) -> bool:
    """Retry network failures and 5xx answers. 4xx are final."""
    if isinstance(error, CircuitOpenError):
        return False
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    if isinstance(error, (httpx.TransportError, ConnectionError, asyncio.TimeoutError)):
        return True
    return False


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    backoff_multiplier: float = 2.0,
    should_retry: Callable[[BaseException], bool] = default_should_retry,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Awaits `fn` up to `max_retries` times in total, sleeping with exponential
    backoff between attempts. The last error is re-raised once the attempts run
    out or as soon as `should_retry` rejects it.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be >= 1")

    delay = initial_delay
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except Exception as error:
            if attempt >= max_retries or not should_retry(error):
                raise
            wait = min(delay, max_delay)
            logger.warning(f"Attempt {attempt}/{max_retries} failed ({type(error).__name__}: {error}). Retrying in {wait:.2f}s")
            await sleep(wait)
            delay = min(delay * backoff_multiplier, max_delay)


class CircuitBreaker:
    """
    closed -> open after `threshold` consecutive failures. While open, calls are
    rejected until `timeout` seconds have passed since the last failure; then a
    single trial call runs (half_open). Its outcome closes or re-opens the breaker.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, threshold: int = 5, timeout: float = 60.0, clock: Callable[[], float] = time.monotonic, name: str = "default"):
        self.threshold = threshold
        self.timeout = timeout
        self.name = name
        self._clock = clock
        self._state = self.CLOSED
        self._failures = 0
        self._last_failure: Optional[float] = None
        self._trial_in_flight = False

    @property
    def state(self) -> str:
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    def snapshot(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self._state,
            "failures": self._failures,
            "threshold": self.threshold,
            "timeout_seconds": self.timeout,
        }

    def _acquire(self) -> bool:
        """Decide se a chamada pode seguir. Retorna True quando ela é a chamada de teste."""
        if self._state == self.CLOSED:
            return False
        if self._state == self.OPEN:
            elapsed = self._clock() - (self._last_failure or 0.0)
            if elapsed > self.timeout:
                self._state = self.HALF_OPEN
                self._trial_in_flight = True
                logger.info(f"Circuit '{self.name}' half-open, allowing one trial call.")
                return True
            raise CircuitOpenError()
        # half_open com teste em andamento
        if self._trial_in_flight:
            raise CircuitOpenError()
        self._trial_in_flight = True
        return True

    def _on_success(self) -> None:
        if self._state != self.CLOSED:
            logger.info(f"Circuit '{self.name}' closed after successful call.")
        self._failures = 0
        self._state = self.CLOSED
        self._trial_in_flight = False

    def _on_failure(self, is_trial: bool) -> None:
        self._failures += 1
        self._last_failure = self._clock()
        self._trial_in_flight = False
        if is_trial or self._failures >= self.threshold:
            if self._state != self.OPEN:
                logger.warning(f"Circuit '{self.name}' OPEN after {self._failures} consecutive failures.")
            self._state = self.OPEN

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        is_trial = self._acquire()
        try:
            result = await fn()
        except Exception:
            self._on_failure(is_trial)
            raise
        self._on_success()
        return result

    def reset(self) -> None:
        self._state = self.CLOSED
        self._failures = 0
        self._last_failure = None
        self._trial_in_flight = False
