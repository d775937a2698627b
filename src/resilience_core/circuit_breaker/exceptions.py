"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open (the operation never ran).
  - The operation's own exception, which the breaker always re-raises unchanged.
"""

from resilience_core.errors import FailureKind, ResilienceError


class CircuitBreakerError(ResilienceError):
    """Base exception for the circuit breaker package."""


class CircuitOpenError(CircuitBreakerError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        retry_after: Seconds until a half-open trial call may be attempted.
    """

    kind = FailureKind.CIRCUIT_OPEN

    def __init__(self, breaker_name: str, retry_after: float) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            breaker_name: Breaker rejecting the call.
            retry_after: Seconds until the next trial window opens.
        """
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        super().__init__(f"circuit_open: {breaker_name} retry_after={retry_after:g}s")
