"""
Debounced batch timer.

A single window shared by all entities: every ``arm`` cancels the outstanding
timer and starts a new one, so the flush only happens once no update has
arrived for the whole delay.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Set

from notification.timers import TimerToken, abort_timers, schedule_timer

logger = logging.getLogger(__name__)


class BatchScheduler:
    """
    Args:
        flush_callback: Async callable run when the window closes
        delay_ms: Default window length in milliseconds
    """

    def __init__(self, flush_callback: Callable[[], Awaitable[None]], delay_ms: int = 5000):
        self._flush_callback = flush_callback
        self.delay_ms = delay_ms
        self._token: Optional[TimerToken] = None
        self._in_flight: Set[TimerToken] = set()

    @property
    def is_armed(self) -> bool:
        return self._token is not None and self._token.pending

    @property
    def in_flight(self) -> List[TimerToken]:
        """Tokens of flushes still running."""
        return list(self._in_flight)

    def arm(self, delay_ms: Optional[int] = None) -> TimerToken:
        """Restart the window."""
        self.cancel()
        delay = self.delay_ms if delay_ms is None else delay_ms
        self._token = schedule_timer(delay, self._fire, name="batch")
        logger.debug(f"Batch window armed for {delay}ms")
        return self._token

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None

    async def _fire(self, token: TimerToken) -> None:
        if token is not self._token:
            return
        # Detach first so a re-arm during delivery starts a new window
        # instead of cancelling this flush.
        self._token = None
        self._in_flight.add(token)
        try:
            await self._flush_callback()
        finally:
            self._in_flight.discard(token)

    async def shutdown(self) -> None:
        """Cancel the window and any flush still running, then wait for it."""
        tokens = list(self._in_flight)
        if self._token is not None:
            tokens.append(self._token)
        self._token = None
        self._in_flight.clear()
        if await abort_timers(tokens):
            logger.info("Cancelled in-flight batch flush")
