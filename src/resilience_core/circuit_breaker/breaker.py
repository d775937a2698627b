"""Core circuit breaker implementation."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

from resilience_core.circuit_breaker.exceptions import CircuitOpenError
from resilience_core.circuit_breaker.metrics import BreakerListener
from resilience_core.circuit_breaker.state import BreakerSnapshot, CircuitState
from resilience_core.clock import Clock, SystemClock
from resilience_core.logging import LoggerLike, log_exception, resolve_logger
from resilience_core.operation import Operation, invoke

T = TypeVar("T")

_Transition = tuple[CircuitState, CircuitState]


@dataclass(slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Attributes:
        failure_threshold: Consecutive failures while ``CLOSED`` before opening.
        open_timeout: Seconds to stay ``OPEN`` after the last failure before a
            trial call is allowed.
        expected_exceptions: Exceptions that count as failures.
        excluded_exceptions: Exceptions that must not count as failures.
    """

    failure_threshold: int = 5
    open_timeout: float = 30.0
    expected_exceptions: tuple[type[Exception], ...] = (Exception,)
    excluded_exceptions: tuple[type[Exception], ...] = ()

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.open_timeout < 0:
            raise ValueError("open_timeout must be >= 0")


class CircuitBreaker:
    """Stateful guard around one unreliable resource.

    One instance is constructed per protected resource and shared by every call
    site using that resource. State changes only inside :meth:`call`; all
    reads and writes go through a lock that is never held while the operation
    runs.
    """

    def __init__(
        self,
        name: str,
        *,
        config: CircuitBreakerConfig | None = None,
        clock: Clock | None = None,
        listeners: Sequence[BreakerListener] | None = None,
        logger: LoggerLike | None = None,
    ) -> None:
        """Build a circuit breaker with optional custom dependencies.

        Args:
            name: Breaker name used in errors, events and logs.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            clock: Time source. Defaults to ``SystemClock()``.
            listeners: Optional listener hooks for breaker events.
            logger: Logger for listener failures. Defaults to this module's
                structlog logger.
        """
        self.name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self._clock: Clock = SystemClock() if clock is None else clock
        self._listeners = tuple(listeners) if listeners is not None else ()
        self._logger = resolve_logger(logger, __name__)
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_at: float | None = None

    @property
    def state(self) -> CircuitState:
        """Current state. ``OPEN`` only turns ``HALF_OPEN`` inside a call."""
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    @property
    def last_failure_at(self) -> float | None:
        with self._lock:
            return self._last_failure_at

    def snapshot(self) -> BreakerSnapshot:
        """Return a consistent point-in-time view of the breaker."""
        with self._lock:
            return BreakerSnapshot(
                name=self.name,
                state=self._state,
                failure_count=self._failure_count,
                last_failure_at=self._last_failure_at,
            )

    async def call(self, operation: Operation[T]) -> T:
        """Invoke a zero-argument operation under circuit breaker protection.

        Args:
            operation: Sync or async callable to execute at most once.

        Returns:
            The result of ``operation`` when allowed and successful.

        Raises:
            CircuitOpenError: When the circuit is open and the call is rejected
                without running ``operation``.
            Exception: The original exception from ``operation`` when it is
                attempted and fails.
        """
        is_trial, retry_after = self._admit(self._clock.now())
        if retry_after is not None:
            await self._emit("on_call_rejected")
            raise CircuitOpenError(self.name, retry_after=retry_after)

        start = self._clock.now()
        try:
            result = await invoke(operation)
        except self.config.excluded_exceptions:
            if is_trial:
                self._abandon_trial()
            raise
        except self.config.expected_exceptions as exc:
            failed_at = self._clock.now()
            transition = self._record_failure(failed_at, is_trial=is_trial)
            await self._emit("on_call_failed", exc, max(failed_at - start, 0.0))
            if is_trial:
                await self._emit(
                    "on_state_change", CircuitState.OPEN, CircuitState.HALF_OPEN
                )
            if transition is not None:
                await self._emit("on_state_change", *transition)
            raise
        except BaseException:
            if is_trial:
                self._abandon_trial()
            raise

        elapsed = max(self._clock.now() - start, 0.0)
        transition = self._record_success(is_trial=is_trial)
        if is_trial:
            await self._emit(
                "on_state_change", CircuitState.OPEN, CircuitState.HALF_OPEN
            )
        if transition is not None:
            await self._emit("on_state_change", *transition)
        await self._emit("on_call_succeeded", elapsed)
        return result

    def _admit(self, now: float) -> tuple[bool, float | None]:
        """Decide whether a call may run.

        Returns:
            ``(is_trial, retry_after)``. ``retry_after`` is ``None`` when the
            call is admitted.
        """
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return False, None
            if self._state == CircuitState.HALF_OPEN:
                return False, 0.0

            last_failure_at = self._last_failure_at
            elapsed = 0.0 if last_failure_at is None else now - last_failure_at
            if elapsed < self.config.open_timeout:
                return False, self.config.open_timeout - elapsed

            self._state = CircuitState.HALF_OPEN
            return True, None

    def _record_failure(self, now: float, *, is_trial: bool) -> _Transition | None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_at = now
            if is_trial:
                self._state = CircuitState.OPEN
                return CircuitState.HALF_OPEN, CircuitState.OPEN
            if (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.config.failure_threshold
            ):
                self._state = CircuitState.OPEN
                return CircuitState.CLOSED, CircuitState.OPEN
            return None

    def _record_success(self, *, is_trial: bool) -> _Transition | None:
        with self._lock:
            self._failure_count = 0
            if is_trial:
                self._state = CircuitState.CLOSED
                return CircuitState.HALF_OPEN, CircuitState.CLOSED
            return None

    def _abandon_trial(self) -> None:
        # Uncounted outcome: reopen with the previous failure time so the next
        # call may probe again.
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN

    async def _emit(self, hook: str, *args: object) -> None:
        for listener in self._listeners:
            try:
                await getattr(listener, hook)(self.name, *args)
            except Exception:
                log_exception(
                    self._logger,
                    "circuit_breaker.listener_failed",
                    breaker=self.name,
                    hook=hook,
                )
