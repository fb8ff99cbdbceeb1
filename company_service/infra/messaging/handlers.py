"""Dispatch table from event type to handler coroutine.

The subscriber looks up the handler for each decoded envelope here. An event
type with no registered handler is not an error: upstream namespaces carry
actions this service does not care about, and those messages are acknowledged
and dropped.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
import logging
from typing import Any

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], Awaitable[Any]]
"""Handler coroutine: receives the envelope ``data`` mapping."""


class EventHandlerRegistry:
    """Registry of event handlers keyed by event type.

    Example:
        registry = EventHandlerRegistry()

        @registry.register("user.created")
        async def on_user_created(data: dict[str, Any]) -> None:
            ...

        handler = registry.get("user.created")
    """

    def __init__(self) -> None:
        self._handlers: dict[str, EventHandler] = {}

    def add(self, event_type: str, handler: EventHandler) -> None:
        """Register a handler for an event type.

        Raises:
            ValueError: If a handler is already registered for the event type.
        """
        if not event_type:
            raise ValueError("event_type must not be empty")
        if event_type in self._handlers:
            raise ValueError(f"Handler already registered for event type '{event_type}'")
        self._handlers[event_type] = handler
        logger.debug(
            "Registered event handler",
            extra={"event_type": event_type, "handler": getattr(handler, "__name__", repr(handler))},
        )

    def register(self, event_type: str) -> Callable[[EventHandler], EventHandler]:
        """Decorator form of ``add``."""

        def decorator(handler: EventHandler) -> EventHandler:
            self.add(event_type, handler)
            return handler

        return decorator

    def get(self, event_type: str) -> EventHandler | None:
        """Return the handler for an event type, or None when unknown."""
        return self._handlers.get(event_type)

    @property
    def event_types(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)


__all__ = ["EventHandler", "EventHandlerRegistry"]
