"""Lightweight event bus for decoupled components."""
from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, DefaultDict, List, Optional, Set, Union

EventHandler = Callable[[Any], Union[Awaitable[None], None]]


class EventBus:
    """Pub/sub event bus accepting both plain and coroutine handlers.

    ``emit`` is the synchronous entry point used from state mutations: plain
    handlers run inline, coroutine handlers are scheduled on the running loop
    and tracked until :meth:`drain` collects them. A failing handler is logged
    and never reaches the emitter or the other subscribers.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._subscribers: DefaultDict[str, List[EventHandler]] = defaultdict(list)
        self._pending: Set[asyncio.Future[Any]] = set()
        self.log = logger or logging.getLogger("commodity_pulse.event_bus")

    def subscribe(self, event_type: str, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for ``event_type`` and return an unsubscribe hook."""

        self._subscribers[event_type].append(handler)

        def _unsubscribe() -> None:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def emit(self, event_type: str, payload: Any) -> None:
        """Deliver ``payload`` to all subscribers without suspending."""

        for handler in list(self._subscribers.get(event_type, ())):
            try:
                result = handler(payload)
            except Exception:
                self.log.exception("event.handler_failed", extra={"event": event_type})
                continue
            if inspect.isawaitable(result):
                future = asyncio.ensure_future(result)
                self._pending.add(future)
                future.add_done_callback(
                    lambda done, event_type=event_type: self._on_done(event_type, done)
                )

    def _on_done(self, event_type: str, future: asyncio.Future[Any]) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self.log.error("event.handler_failed", extra={"event": event_type}, exc_info=exc)

    async def publish(self, event_type: str, payload: Any) -> None:
        """Publish ``payload`` to all subscribers and await coroutine handlers."""

        handlers = list(self._subscribers.get(event_type, ()))
        awaitables = []
        for handler in handlers:
            result = handler(payload)
            if inspect.isawaitable(result):
                awaitables.append(result)
        await asyncio.gather(*awaitables)

    async def drain(self) -> None:
        """Wait for coroutine handlers scheduled by :meth:`emit`."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["EventBus", "EventHandler"]
