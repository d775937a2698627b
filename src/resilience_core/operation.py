"""Zero-argument operation abstraction guarded by the resilience wrappers."""

import inspect
from collections.abc import Awaitable, Callable
from typing import TypeVar, Union, cast

T = TypeVar("T")

Operation = Union[Callable[[], Awaitable[T]], Callable[[], T]]


async def invoke(operation: Operation[T]) -> T:
    """Run ``operation`` once, awaiting its result when it is awaitable.

    Returning means success and raising means failure; there is no third outcome.
    """
    result = operation()
    if inspect.isawaitable(result):
        return await cast(Awaitable[T], result)
    return cast(T, result)
