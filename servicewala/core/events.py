"""
core/events.py

In-process publish/subscribe channel.
- Components subscribe handlers to a named topic
- Publishers await delivery to every handler of that topic
- A failing handler is logged and does not stop delivery to the others
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

# Topics
SERVICES_CHANGED = "services.changed"

Handler = Callable[[dict[str, Any]], Awaitable[None]]


class EventBus:
    """
    Holds topic subscriptions. One instance is built at startup and passed to
    every component that publishes or listens.
    """

    def __init__(self) -> None:
        # Mapping of topic to its handlers, in subscription order
        self.subscribers: dict[str, list[Handler]] = {}

    def subscribe(self, topic: str, handler: Handler) -> None:
        """Registers a handler for a topic."""
        self.subscribers.setdefault(topic, []).append(handler)

    async def publish(self, topic: str, payload: dict[str, Any] | None = None) -> None:
        """Delivers a payload to all handlers of a topic."""
        data = payload or {}
        for handler in list(self.subscribers.get(topic, [])):
            try:
                await handler(data)
            except Exception as e:
                logger.error(f"[EVENTS] Handler for '{topic}' failed: {e}", exc_info=True)
