"""Retry with exponential backoff and circuit breaking for persistence calls.

Each persistence operation gets its own RetryPolicy and CircuitBreaker,
constructed explicitly and injected into the adapter that uses them.
There is no module-level registry of breakers.

Attempts are driven by tenacity. Backoff delay after attempt n (1-based) is
min(base_delay * backoff_multiplier ** (n - 1), max_delay), scaled by a
random factor in [0.75, 1.25) when jitter is enabled. The breaker guards
every individual attempt.
"""

from __future__ import annotations

import asyncio
import random
import time
from enum import StrEnum
from typing import TYPE_CHECKING, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from tenacity import RetryCallState

    from shared.settings import ScorekeeperSettings

logger = structlog.get_logger()

T = TypeVar("T")

# Jitter spreads each delay across +/- 25% of its nominal value.
_JITTER_SPREAD = 0.5
_JITTER_FLOOR = 0.75

DEFAULT_RETRYABLE: tuple[type[BaseException], ...] = (OSError, TimeoutError)


class RetryConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)
    jitter: bool = True


class CircuitBreakerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    failure_threshold: int = Field(default=5, ge=1)
    recovery_timeout: float = Field(default=60.0, ge=0)
    half_open_max_attempts: int = Field(default=3, ge=1)


class CircuitState(StrEnum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised when a call is refused because the operation's circuit is open."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"circuit open for {operation}")


class CircuitBreaker:
    """
    Failure counter guarding a single operation.

    CLOSED lets calls through and opens after failure_threshold consecutive
    failures. OPEN refuses calls until recovery_timeout has elapsed since the
    last failure, then moves to HALF_OPEN. HALF_OPEN admits up to
    half_open_max_attempts trial calls: a success closes the circuit, a
    failure opens it again.
    """

    def __init__(
        self,
        operation: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.operation = operation
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_at = 0.0
        self._half_open_attempts = 0

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def before_call(self) -> None:
        """Admit a call or raise CircuitOpenError."""
        if self._state == CircuitState.OPEN:
            if self._clock() - self._last_failure_at < self._config.recovery_timeout:
                raise CircuitOpenError(self.operation)
            self._state = CircuitState.HALF_OPEN
            self._half_open_attempts = 0
            logger.info("circuit half-open", operation=self.operation)

        if self._state == CircuitState.HALF_OPEN:
            if self._half_open_attempts >= self._config.half_open_max_attempts:
                raise CircuitOpenError(self.operation)
            self._half_open_attempts += 1

    def record_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("circuit closed", operation=self.operation)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._half_open_attempts = 0

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_at = self._clock()
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self._config.failure_threshold:
            if self._state != CircuitState.OPEN:
                logger.warning("circuit opened", operation=self.operation, failure_count=self._failure_count)
            self._state = CircuitState.OPEN


class ProportionalJitter(wait_base):
    """Scale another wait strategy by a random factor in [0.75, 1.25)."""

    def __init__(self, wait: wait_base, rng: Callable[[], float] = random.random) -> None:
        self._wait = wait
        self._rng = rng

    def __call__(self, retry_state: RetryCallState) -> float:
        return self._wait(retry_state) * (_JITTER_FLOOR + self._rng() * _JITTER_SPREAD)


class RetryPolicy:
    """Retries one named operation with tenacity, guarded by its circuit breaker."""

    def __init__(  # noqa: PLR0913
        self,
        operation: str,
        config: RetryConfig | None = None,
        breaker: CircuitBreaker | None = None,
        *,
        retryable: tuple[type[BaseException], ...] = DEFAULT_RETRYABLE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.operation = operation
        self.config = config or RetryConfig()
        self.breaker = breaker or CircuitBreaker(operation)
        self._retryable = retryable
        self._sleep = sleep
        backoff = wait_exponential(
            multiplier=self.config.base_delay,
            max=self.config.max_delay,
            exp_base=self.config.backoff_multiplier,
        )
        self._wait = ProportionalJitter(backoff, rng) if self.config.jitter else backoff

    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        logger.warning(
            "retrying operation",
            operation=self.operation,
            attempt=retry_state.attempt_number,
            delay=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
            error=str(outcome.exception()) if outcome else None,
        )

    async def _guarded(self, operation: Callable[[], Awaitable[T]]) -> T:
        self.breaker.before_call()
        try:
            result = await operation()
        except Exception:
            self.breaker.record_failure()
            raise
        else:
            self.breaker.record_success()
            return result

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Await operation, retrying retryable failures.

        Raises:
            CircuitOpenError: If the breaker refuses the call
            Exception: The last error once attempts are exhausted, or any
                non-retryable error immediately

        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(self._retryable),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._guarded(operation)
        except self._retryable as exc:
            logger.error(
                "operation failed after retries",
                operation=self.operation,
                attempts=self.config.max_attempts,
                error=str(exc),
            )
            raise
        return result


def build_retry_policy(operation: str, settings: ScorekeeperSettings) -> RetryPolicy:
    """Construct a policy and its own breaker for one operation from settings."""
    retry_config = RetryConfig(
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay,
        max_delay=settings.retry_max_delay,
        backoff_multiplier=settings.retry_backoff_multiplier,
        jitter=settings.retry_jitter,
    )
    breaker_config = CircuitBreakerConfig(
        failure_threshold=settings.breaker_failure_threshold,
        recovery_timeout=settings.breaker_recovery_timeout,
        half_open_max_attempts=settings.breaker_half_open_max_attempts,
    )
    return RetryPolicy(operation, retry_config, CircuitBreaker(operation, breaker_config))
