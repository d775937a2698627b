from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Protocol


class Clock(Protocol):
    """Monotonic time source with a cooperative sleep."""

    def now(self) -> float:
        """Return monotonic time in seconds."""

    async def sleep(self, seconds: float) -> None:
        """Suspend the current task for ``seconds``."""


class SystemClock:
    """Clock backed by ``time.monotonic`` and ``asyncio.sleep``."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0.0))


def build_interruptible_sleep(
    stop_event: asyncio.Event,
    *,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> Callable[[float], Awaitable[None]]:
    """Build an async sleep that exits early when shutdown is requested.

    When ``sleep`` is given it is raced against ``stop_event`` instead of
    waiting on the event with a timeout, so a fake clock can drive the delay.
    """

    async def _interruptible_sleep(delay: float) -> None:
        if stop_event.is_set():
            return

        bounded_delay = max(delay, 0.0)
        if sleep is None:
            with suppress(TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=bounded_delay)
            return

        sleeper = asyncio.ensure_future(sleep(bounded_delay))
        waiter = asyncio.ensure_future(stop_event.wait())
        try:
            await asyncio.wait(
                {sleeper, waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()
                    with suppress(asyncio.CancelledError):
                        await task
        if sleeper.done() and not sleeper.cancelled():
            sleeper.result()

    return _interruptible_sleep
