"""Cancellable repeating actions on the running event loop.

Every periodic action (reveal ticks, recovery probes) is scheduled through
``call_every`` and owned through the returned ``TimerHandle``. Holders must
cancel the handle when the action is superseded or the session ends.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

SleepFunc = Callable[[float], Awaitable[None]]
TimerAction = Callable[[], Any]


class TimerHandle:
    """Handle to a scheduled repeating action."""

    def __init__(self, task: asyncio.Task) -> None:
        self._task = task

    @property
    def name(self) -> str:
        return self._task.get_name()

    @property
    def done(self) -> bool:
        """True once the action stopped, failed or was cancelled."""
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def cancel(self) -> None:
        """Stop the action. Safe to call more than once."""
        if not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the action to finish.

        Returns normally when the action stopped or was cancelled, and
        re-raises any exception the action raised. Cancelling the waiter does
        not cancel the action.
        """
        await asyncio.wait({self._task})
        if not self._task.cancelled():
            exc = self._task.exception()
            if exc is not None:
                raise exc


def call_every(
    interval: float,
    action: TimerAction,
    *,
    sleep: SleepFunc = asyncio.sleep,
    immediate: bool = False,
    name: str | None = None
) -> TimerHandle:
    """Run ``action`` every ``interval`` seconds until it returns False.

    Args:
        interval: Seconds to wait between runs
        action: Sync or async callable; returning ``False`` stops the timer
        sleep: Sleep function (injectable for tests)
        immediate: Run the first time without waiting
        name: Task name, shown in debug output

    Returns:
        Handle that must be kept to cancel the timer
    """
    async def _run() -> None:
        if not immediate:
            await sleep(interval)
        while True:
            result = action()
            if inspect.isawaitable(result):
                result = await result
            if result is False:
                return
            await sleep(interval)

    return TimerHandle(asyncio.create_task(_run(), name=name))
