"""In-process async circuit breaker.

This package implements the circuit breaker pattern from *Release It!*.

Key behavior notes:
  - State lives in the ``CircuitBreaker`` instance. Construct one per protected
    resource and share it across every call site using that resource.
  - ``HALF_OPEN`` admits exactly one in-flight trial call; concurrent callers
    are rejected with ``CircuitOpenError(retry_after=0.0)``.
  - The call that trips the breaker still receives the operation's own
    exception. Only later calls see ``CircuitOpenError``.
  - If an excluded exception is raised during a trial, the trial is treated as
    if it never happened: the circuit returns to ``OPEN`` with its previous
    failure time and no listener state changes are emitted.
"""

from resilience_core.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from resilience_core.circuit_breaker.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
)
from resilience_core.circuit_breaker.metrics import (
    BreakerListener,
    LoggingBreakerListener,
)
from resilience_core.circuit_breaker.state import BreakerSnapshot, CircuitState

__all__ = [
    "BreakerListener",
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "LoggingBreakerListener",
]
