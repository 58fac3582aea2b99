"""
Sack Event Bus — the change-notification channel.

Combines two patterns:
1. Observer (pub/sub): Listeners subscribe to event types
2. Middleware chain: Events pass through middleware before delivery

Every driver owns one bus. Potentials spawned from a driver hold a
Subscription on it and re-emit matching events on a private bus of
their own.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Awaitable, Callable, Iterator

from sack.core.events import Event

logger = logging.getLogger(__name__)

# Type aliases
EventHandler = Callable[[Event], Awaitable[None]]
MiddlewareNext = Callable[[Event], Awaitable[Event]]
MiddlewareFunc = Callable[[Event, MiddlewareNext], Awaitable[Event]]

_current_origin: ContextVar[str | None] = ContextVar("sack_origin", default=None)


@contextmanager
def originating(origin: str) -> Iterator[None]:
    """
    Tag every event emitted inside the block with origin.

    Usage:
        with originating(self._origin):
            await backend.insert(record)   # echo carries self._origin

    The tag is context-local: writes running in other tasks are not tagged.
    """
    token = _current_origin.set(origin)
    try:
        yield
    finally:
        _current_origin.reset(token)


def current_origin() -> str | None:
    """The origin tag of the enclosing originating() block, if any."""
    return _current_origin.get()


class Subscription:
    """
    Handle for a single (event_type, handler) registration.

    cancel() is idempotent. Also usable as a context manager:

        with bus.subscribe("entry:*", handler):
            ...  # handler receives events here
    """

    __slots__ = ("_bus", "event_type", "handler", "active")

    def __init__(self, bus: EventBus, event_type: str, handler: EventHandler) -> None:
        self._bus = bus
        self.event_type = event_type
        self.handler = handler
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._bus.off(self.event_type, self.handler)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.cancel()


class EventBus:
    """
    Publish/subscribe event bus with middleware pipeline.

    Usage:
        bus = EventBus()

        # Subscribe
        bus.on("entry:update", my_handler)
        bus.on("entry:*", my_wildcard_handler)
        subscription = bus.subscribe("*", my_catch_all_handler)

        # Add middleware
        bus.use(change_logger.middleware)

        # Emit
        await bus.emit(Event.update(entry, entry["id"]))
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = {}
        self._middleware: list[MiddlewareFunc] = []

    # ━━━ Subscription ━━━

    def on(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe to an event type. Supports wildcards: 'entry:*', '*'."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)

    def off(self, event_type: str, handler: EventHandler) -> None:
        """Unsubscribe from an event type."""
        if event_type in self._subscribers:
            self._subscribers[event_type] = [
                h for h in self._subscribers[event_type] if h is not handler
            ]
            if not self._subscribers[event_type]:
                del self._subscribers[event_type]

    def subscribe(self, event_type: str, handler: EventHandler) -> Subscription:
        """Subscribe and return a handle that unsubscribes on cancel()."""
        self.on(event_type, handler)
        return Subscription(self, event_type, handler)

    # ━━━ Middleware ━━━

    def use(self, middleware: MiddlewareFunc) -> None:
        """
        Add middleware to the processing pipeline.

        Middleware signature:
            async def my_middleware(event: Event, next: MiddlewareNext) -> Event:
                # pre-processing
                result = await next(event)  # continue chain
                # post-processing
                return result
        """
        self._middleware.append(middleware)

    # ━━━ Emission ━━━

    async def emit(self, event: Event) -> Event:
        """
        Emit an event through the middleware chain, then to subscribers.

        Middleware executes in registration order.
        Subscribers execute concurrently and have all finished when this returns.
        Returns the (possibly modified) event.
        """
        if event.origin is None:
            event.origin = _current_origin.get()
        chain = self._build_chain()
        return await chain(event)

    def emit_nowait(self, event: Event) -> None:
        """
        Emit an event without waiting for processing.

        Errors are logged but not raised.
        """
        if event.origin is None:
            event.origin = _current_origin.get()
        try:
            loop = asyncio.get_running_loop()
            loop.create_task(self._emit_safe(event))
        except RuntimeError:
            # No running loop — just log and skip
            logger.debug(f"No event loop for nowait emit: {event.type}")

    # ━━━ Internals ━━━

    def _build_chain(self) -> MiddlewareNext:
        """Build the middleware chain ending with subscriber dispatch."""

        async def dispatch(event: Event) -> Event:
            """Final handler — dispatch to all matching subscribers."""
            handlers = self._find_handlers(event.type)
            if handlers:
                results = await asyncio.gather(
                    *(self._call_handler(h, event) for h in handlers),
                    return_exceptions=True,
                )
                # Log any subscriber errors (don't propagate)
                for result in results:
                    if isinstance(result, Exception):
                        logger.error(
                            f"Subscriber error for {event.type}: {result}",
                            exc_info=result,
                        )
            return event

        # Wrap dispatch with middleware (innermost to outermost)
        handler: MiddlewareNext = dispatch
        for mw in reversed(self._middleware):
            next_handler = handler

            async def make_handler(
                event: Event,
                *,
                _mw: MiddlewareFunc = mw,
                _next: MiddlewareNext = next_handler,
            ) -> Event:
                return await _mw(event, _next)

            handler = make_handler

        return handler

    def _find_handlers(self, event_type: str) -> list[EventHandler]:
        """Find all handlers matching an event type, including wildcards."""
        handlers: list[EventHandler] = []

        # Snapshot: handlers may unsubscribe while we dispatch
        for pattern, subs in list(self._subscribers.items()):
            if pattern == event_type or pattern == "*":
                handlers.extend(subs)
            elif "*" in pattern and fnmatch.fnmatch(event_type, pattern):
                handlers.extend(subs)

        return handlers

    @staticmethod
    async def _call_handler(handler: EventHandler, event: Event) -> None:
        # Each handler runs in its own task; writes it makes are not the emitter's
        _current_origin.set(None)
        await handler(event)

    async def _emit_safe(self, event: Event) -> None:
        """Emit with error catching for fire-and-forget."""
        try:
            await self.emit(event)
        except Exception as e:
            logger.error(f"Error in nowait emit for {event.type}: {e}")

    @property
    def subscriber_count(self) -> int:
        """Total number of subscriptions (for debugging)."""
        return sum(len(subs) for subs in self._subscribers.values())
