"""
In-process event bus with explicit subscription objects.

Every ``subscribe`` call returns a ``Subscription`` that owns the binding.
Disposing it (directly or by leaving its ``with`` block) removes exactly that
handler, so callers never unbind by handler identity.

Usage:
    bus = EventBus()
    with bus.subscribe(ENTITY_UPDATED, handler):
        await bus.emit(ENTITY_UPDATED, "PluginA", "1.0.0", "1.1.0")
"""

import inspect
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

ENTITY_UPDATED = "entity-updated"
RESTART_REQUIRED = "restart-required"
SELF_UPDATE_AVAILABLE = "self-update-available"


class Subscription:
    """A single handler binding on an ``EventBus``."""

    def __init__(self, bus: "EventBus", event: str, handler: Callable[..., Any]):
        self.bus = bus
        self.event = event
        self.handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def dispose(self) -> None:
        """Remove the binding. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self.bus._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.dispose()
        return False

    def __repr__(self) -> str:
        state = "active" if self._active else "disposed"
        return f"<Subscription {self.event} {state}>"


class EventBus:
    """Dispatches named events to subscribed handlers in subscription order."""

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {}

    def subscribe(self, event: str, handler: Callable[..., Any]) -> Subscription:
        subscription = Subscription(self, event, handler)
        self._subscriptions.setdefault(event, []).append(subscription)
        logger.debug(f"Subscribed {getattr(handler, '__qualname__', handler)} to {event}")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        handlers = self._subscriptions.get(subscription.event, [])
        if subscription in handlers:
            handlers.remove(subscription)
        if not handlers:
            self._subscriptions.pop(subscription.event, None)

    def subscriber_count(self, event: str) -> int:
        return len(self._subscriptions.get(event, []))

    async def emit(self, event: str, *args: Any, **kwargs: Any) -> int:
        """
        Deliver an event to every current subscriber.

        Coroutine handlers are awaited one after another. A failing handler is
        logged and does not stop the remaining handlers or reach the emitter.

        Returns:
            Number of handlers that ran without raising
        """
        delivered = 0
        for subscription in list(self._subscriptions.get(event, [])):
            if not subscription.active:
                continue
            try:
                result = subscription.handler(*args, **kwargs)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Handler for {event} failed: {e}", exc_info=True)
        return delivered
