"""Scoped lifecycle wiring the dashboard's sentiment components together."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from core.config import DashboardConfig
from core.event_bus import EventBus, EventHandler
from core.lifecycle import TaskScope
from core.runtime_flags import RuntimeFlags, get_runtime_flags
from services.runtime.metrics import Metrics
from services.sentiment.api import SentiAPI
from services.sentiment.controller import SelectionController
from services.sentiment.dispatcher import Dispatcher
from services.sentiment.fetchers import GeminiSentimentClient, SentimentProvider
from services.sentiment.mock import MockSentimentClient
from services.sentiment.poller import Poller, Sleep
from services.sentiment.prefetch import PrefetchDriver
from services.sentiment.state import DashboardState
from services.sentiment.store import SentiStore


def build_provider(flags: Optional[RuntimeFlags] = None) -> SentimentProvider:
    flags = flags or get_runtime_flags()
    if flags.mock_mode:
        return MockSentimentClient()
    return GeminiSentimentClient()


class DashboardSession:
    """Own the cache, UI-state and every timer or fetch started for them.

    Use as ``async with DashboardSession(...) as session``: entering warms the
    cache for the default context and starts the refresh timer, leaving
    cancels all of it.
    """

    def __init__(
        self,
        config: DashboardConfig,
        provider: SentimentProvider,
        *,
        sleep: Sleep = asyncio.sleep,
        metrics: Optional[Metrics] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.log = logger or logging.getLogger("commodity_pulse.sentiment.session")
        self.metrics = metrics or Metrics()
        self.bus = EventBus()
        self.scope = TaskScope("sentiment-session", logger=self.log)
        self.store = SentiStore(bus=self.bus)
        self.state = DashboardState(
            subjects=config.subjects,
            context=config.default_context,
            bus=self.bus,
        )
        self.dispatcher = Dispatcher(
            provider, self.store, self.state, self.scope, metrics=self.metrics
        )
        self.prefetch = PrefetchDriver(self.dispatcher, self.scope)
        self.poller = Poller(
            self.dispatcher,
            self.state,
            self.scope,
            period=config.refresh_period_sec,
            sleep=sleep,
        )
        self.controller = SelectionController(
            self.dispatcher,
            self.store,
            self.state,
            self.prefetch,
            self.poller,
            reset_cursor_on_context_change=config.reset_cursor_on_context_change,
        )
        self.api = SentiAPI(self.store, self.state)

    def subscribe(self, event_type: str, handler: EventHandler) -> Callable[[], None]:
        return self.bus.subscribe(event_type, handler)

    def start(self) -> None:
        self.log.info(
            "sentiment.session.start",
            extra={
                "subjects": list(self.state.subjects),
                "context": self.state.context.value,
                "period": self.poller.period,
            },
        )
        self.prefetch.start(self.state.subjects, self.state.context)
        self.poller.start()

    async def aclose(self) -> None:
        await self.poller.stop()
        await self.prefetch.stop()
        await self.scope.aclose()
        await self.bus.drain()
        self.log.info("sentiment.session.stop", extra={"cache_entries": len(self.store)})

    async def __aenter__(self) -> "DashboardSession":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def select(self, subject: str) -> Optional[asyncio.Task[None]]:
        return self.controller.select(subject)

    def deselect(self) -> None:
        self.controller.deselect()

    def retry(self) -> Optional[asyncio.Task[None]]:
        return self.controller.retry()

    def toggle_driver(self, index: int) -> None:
        self.controller.toggle_driver(index)

    def set_context(self, context: str) -> bool:
        return self.controller.set_context(context)


__all__ = ["DashboardSession", "build_provider"]
