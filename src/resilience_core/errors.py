"""Failure taxonomy shared by the circuit breaker and retry executor.

Callers can distinguish between:
  - The wrapped operation failing (its own exception propagates unchanged).
  - A call being rejected because the circuit is open.
  - A retry loop giving up after its last attempt.
  - A retry loop being stopped before a new attempt started.
"""

from enum import StrEnum


class FailureKind(StrEnum):
    """Kinds of failure surfaced to callers."""

    OPERATION = "operation"
    CIRCUIT_OPEN = "circuit_open"
    RETRIES_EXHAUSTED = "retries_exhausted"
    RETRY_CANCELLED = "retry_cancelled"


class ResilienceError(Exception):
    """Base exception for failures raised by this package itself."""

    kind: FailureKind = FailureKind.OPERATION


class RetriesExhaustedError(ResilienceError):
    """Raised when every attempt of a retry loop failed.

    Attributes:
        attempts: Number of attempts made.
        last_error: Exception raised by the final attempt.
    """

    kind = FailureKind.RETRIES_EXHAUSTED

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        """Initialize a retries-exhausted exception payload.

        Args:
            attempts: Total attempts made, including the first.
            last_error: Exception raised by the final attempt.
        """
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"retries_exhausted: attempts={attempts} "
            f"last_error={last_error.__class__.__name__}: {last_error}"
        )


class RetryCancelledError(ResilienceError):
    """Raised when a stop signal prevents a retry loop from starting an attempt."""

    kind = FailureKind.RETRY_CANCELLED

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"retry_cancelled: attempts={attempts}")


def failure_kind(error: BaseException) -> FailureKind:
    """Classify an exception by its ``kind`` tag.

    Exceptions without a tag come from the wrapped operation.
    """
    kind = getattr(error, "kind", None)
    if isinstance(kind, FailureKind):
        return kind
    return FailureKind.OPERATION
