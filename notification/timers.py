"""
One-shot asyncio timers addressed by cancellation tokens.

Schedulers keep ``key -> TimerToken`` maps and compare tokens, not task
handles, when a timer fires. A token that was cancelled or replaced is
simply ignored by the firing callback.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

logger = logging.getLogger(__name__)


class TimerToken:
    """Cancellation token for one armed timer."""

    __slots__ = ('name', '_cancelled', '_fired', '_task')

    def __init__(self, name: str):
        self.name = name
        self._cancelled = False
        self._fired = False
        self._task: Optional[asyncio.Task] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def pending(self) -> bool:
        """True while the timer is still waiting to fire."""
        return not self._cancelled and not self._fired

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def cancel(self) -> None:
        """
        Invalidate the token.

        A timer that is still sleeping is cancelled outright. A timer that has
        already fired keeps running its callback; the callback sees the flag.
        """
        self._cancelled = True
        if not self._fired and self._task is not None and not self._task.done():
            self._task.cancel()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "fired" if self._fired else "pending"
        return f"<TimerToken {self.name} {state}>"


def schedule_timer(
    delay_ms: float,
    callback: Callable[[TimerToken], Awaitable[None]],
    name: str = "timer"
) -> TimerToken:
    """
    Run ``callback(token)`` once after ``delay_ms`` milliseconds.

    Must be called from a running event loop.
    """
    token = TimerToken(name)

    async def _run() -> None:
        try:
            await asyncio.sleep(max(0.0, delay_ms) / 1000)
        except asyncio.CancelledError:
            return
        if token.cancelled:
            return
        token._fired = True
        try:
            await callback(token)
        except Exception as e:
            logger.error(f"Timer {name} callback failed: {e}", exc_info=True)

    token._task = asyncio.get_running_loop().create_task(_run(), name=f"timer:{name}")
    return token


async def abort_timers(tokens: Iterable[TimerToken]) -> int:
    """
    Cancel timers outright, including ones whose callback is already running,
    and wait until their tasks have finished.

    The calling task is never cancelled, so a callback may tear down its own
    scheduler.

    Returns:
        Number of tasks that were cancelled
    """
    current = asyncio.current_task()
    tasks = []
    for token in tokens:
        token._cancelled = True
        task = token.task
        if task is None or task.done() or task is current or task in tasks:
            continue
        task.cancel()
        tasks.append(task)
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
    return len(tasks)
