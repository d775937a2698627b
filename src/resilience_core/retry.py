from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar, cast

from structlog.contextvars import bound_contextvars
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)
from tenacity.retry import retry_base

from resilience_core.clock import Clock, SystemClock, build_interruptible_sleep
from resilience_core.errors import (
    FailureKind,
    RetriesExhaustedError,
    RetryCancelledError,
    failure_kind,
)
from resilience_core.logging import LoggerLike, log_warning, resolve_logger
from resilience_core.operation import Operation, invoke

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry attempt count and the fixed inter-attempt delay.

    Attributes:
        max_attempts: Total attempts including the first.
        delay: Seconds to wait between attempts.
        retry_on_circuit_open: Retry ``CircuitOpenError`` like any other
            failure instead of re-raising it immediately.
        excluded_exceptions: Exceptions re-raised without retrying.
    """

    max_attempts: int = 3
    delay: float = 1.0
    retry_on_circuit_open: bool = False
    excluded_exceptions: tuple[type[BaseException], ...] = ()

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")


def build_fixed_delay_retrying(
    *,
    retry: retry_base,
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    before_sleep: Callable[[RetryCallState], None] | None = None,
    reraise: bool = True,
) -> AsyncRetrying:
    """Build an ``AsyncRetrying`` with a fixed delay between attempts."""
    hooks: dict[str, Any] = {}
    if sleep is not None:
        hooks["sleep"] = sleep
    if before_sleep is not None:
        hooks["before_sleep"] = before_sleep
    return AsyncRetrying(
        retry=retry,
        wait=wait_fixed(policy.delay),
        stop=stop_after_attempt(policy.max_attempts),
        reraise=reraise,
        **hooks,
    )


class RetryExecutor:
    """Run an operation up to ``max_attempts`` times, stopping at first success.

    Executors hold configuration only. The attempt counter lives inside one
    :meth:`run` call, so an executor can be shared or built per call. While an
    attempt runs, its number is bound as ``retry_attempt`` in structlog's
    context variables.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        clock: Clock | None = None,
        stop_event: asyncio.Event | None = None,
        logger: LoggerLike | None = None,
    ) -> None:
        """Build a retry executor.

        Args:
            policy: Attempt count, delay and classification options. Defaults
                to ``RetryPolicy()``.
            clock: Time source whose ``sleep`` drives the delay. Defaults to
                ``SystemClock()``.
            stop_event: When set, pending delays end early and no new attempt
                starts.
            logger: Logger for scheduled retries. Defaults to this module's
                structlog logger.
        """
        self.policy = RetryPolicy() if policy is None else policy
        self._stop_event = stop_event
        self._logger = resolve_logger(logger, __name__)
        self._sleep: Callable[[float], Awaitable[None]]
        if stop_event is None:
            self._sleep = (SystemClock() if clock is None else clock).sleep
        elif clock is None:
            self._sleep = build_interruptible_sleep(stop_event)
        else:
            self._sleep = build_interruptible_sleep(stop_event, sleep=clock.sleep)

    async def run(self, operation: Operation[T]) -> T:
        """Invoke ``operation`` with bounded retries.

        Args:
            operation: Sync or async zero-argument callable, optionally a bound
                ``CircuitBreaker.call``.

        Returns:
            The result of the first successful attempt.

        Raises:
            RetriesExhaustedError: Every attempt failed; carries the attempt
                count and the last error.
            CircuitOpenError: A guarding breaker rejected the call and the
                policy does not retry open circuits.
            RetryCancelledError: The stop event was set before a new attempt.
            Exception: Any excluded exception, unchanged.
        """
        retrying = build_fixed_delay_retrying(
            retry=retry_if_exception(self._should_retry),
            policy=self.policy,
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=False,
        )
        try:
            async for attempt in retrying:
                attempt_number = attempt.retry_state.attempt_number
                with attempt, bound_contextvars(retry_attempt=attempt_number):
                    self._raise_if_stopped(attempt_number)
                    return await invoke(operation)
        except RetryError as error:
            last_attempt = error.last_attempt
            last_error = cast(BaseException, last_attempt.exception())
            raise RetriesExhaustedError(
                attempts=last_attempt.attempt_number,
                last_error=last_error,
            ) from last_error

        raise RuntimeError("Retry loop exited unexpectedly.")

    def _should_retry(self, error: BaseException) -> bool:
        if not isinstance(error, Exception):
            return False
        if isinstance(error, self.policy.excluded_exceptions):
            return False
        kind = failure_kind(error)
        if kind == FailureKind.CIRCUIT_OPEN:
            return self.policy.retry_on_circuit_open
        return kind == FailureKind.OPERATION

    def _raise_if_stopped(self, attempt_number: int) -> None:
        if self._stop_event is not None and self._stop_event.is_set():
            raise RetryCancelledError(attempts=attempt_number - 1)

    def _log_retry(self, state: RetryCallState) -> None:
        outcome = state.outcome
        error = None if outcome is None else outcome.exception()
        log_warning(
            self._logger,
            "retry.attempt_failed",
            attempt=state.attempt_number,
            max_attempts=self.policy.max_attempts,
            delay=self.policy.delay,
            error_type=None if error is None else error.__class__.__name__,
            error=None if error is None else str(error),
        )
