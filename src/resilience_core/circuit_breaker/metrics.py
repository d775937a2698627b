"""Observability hooks for circuit breakers."""

from __future__ import annotations

from typing import Protocol

from resilience_core.circuit_breaker.state import CircuitState
from resilience_core.logging import (
    LoggerLike,
    log_info,
    log_warning,
    resolve_logger,
)


class BreakerListener(Protocol):
    """Listener protocol for circuit breaker events.

    Notes:
        Hooks run after the breaker has released its state lock, so a listener
        may safely inspect ``CircuitBreaker.snapshot()``.
    """

    async def on_state_change(
        self, name: str, old: CircuitState, new: CircuitState
    ) -> None:
        """Handle circuit state transitions."""

    async def on_call_rejected(self, name: str) -> None:
        """Handle call rejection while the circuit is open."""

    async def on_call_succeeded(self, name: str, elapsed: float) -> None:
        """Handle successful protected call completion."""

    async def on_call_failed(self, name: str, exc: Exception, elapsed: float) -> None:
        """Handle failed protected call completion."""


class LoggingBreakerListener(BreakerListener):
    """Listener that writes breaker events to a structured logger."""

    def __init__(
        self,
        logger: LoggerLike | None = None,
    ) -> None:
        """Create a logging listener.

        Args:
            logger: Structured or stdlib logger. Defaults to this module's
                structlog logger.
        """
        self._logger = resolve_logger(logger, __name__)

    async def on_state_change(
        self,
        name: str,
        old: CircuitState,
        new: CircuitState,
    ) -> None:
        """Log a state transition; opening the circuit is a warning."""
        log = log_warning if new == CircuitState.OPEN else log_info
        log(
            self._logger,
            "circuit_breaker.state_changed",
            breaker=name,
            old_state=str(old),
            new_state=str(new),
        )

    async def on_call_rejected(self, name: str) -> None:
        """Log a fast-failed call."""
        log_info(self._logger, "circuit_breaker.call_rejected", breaker=name)

    async def on_call_succeeded(self, name: str, elapsed: float) -> None:
        """No-op for this listener."""
        _ = (name, elapsed)

    async def on_call_failed(self, name: str, exc: Exception, elapsed: float) -> None:
        """Log a counted failure of the protected operation."""
        log_info(
            self._logger,
            "circuit_breaker.call_failed",
            breaker=name,
            error_type=exc.__class__.__name__,
            error=str(exc),
            elapsed=round(elapsed, 6),
        )
