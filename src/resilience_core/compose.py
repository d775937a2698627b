"""Composition of retry and circuit breaker around one operation.

Control flow for a guarded call::

    caller -> RetryExecutor.run -> CircuitBreaker.call -> operation

Each retry attempt passes through the breaker, so an attempt rejected by an
open circuit ends the retry loop unless the retry policy says otherwise.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar, cast

from resilience_core.circuit_breaker import CircuitBreaker
from resilience_core.operation import Operation, invoke
from resilience_core.retry import RetryExecutor

T = TypeVar("T")
P = ParamSpec("P")


async def guard(
    operation: Operation[T],
    *,
    breaker: CircuitBreaker | None = None,
    retry: RetryExecutor | None = None,
) -> T:
    """Run ``operation`` through the optional retry executor and breaker."""
    guarded: Operation[T] = operation
    if breaker is not None:
        guarded = functools.partial(breaker.call, operation)
    if retry is None:
        return await invoke(guarded)
    return await retry.run(guarded)


def resilient(
    *,
    breaker: CircuitBreaker | None = None,
    retry: RetryExecutor | None = None,
) -> Callable[[Callable[P, Awaitable[T]] | Callable[P, T]], Callable[P, Awaitable[T]]]:
    """Decorate a function so every call runs under ``guard``.

    Example::

        breaker = CircuitBreaker("billing-api")
        retry = RetryExecutor(RetryPolicy(max_attempts=3, delay=1.0))

        @resilient(breaker=breaker, retry=retry)
        async def fetch_invoice(invoice_id: str) -> dict[str, object]:
            ...
    """

    def decorator(
        func: Callable[P, Awaitable[T]] | Callable[P, T],
    ) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation = cast(Operation[T], functools.partial(func, *args, **kwargs))
            return await guard(operation, breaker=breaker, retry=retry)

        return wrapper

    return decorator
