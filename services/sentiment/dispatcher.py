"""Single writer of the sentiment cache."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from core.lifecycle import TaskScope
from services.runtime.logging import with_trace
from services.runtime.metrics import Metrics
from services.sentiment.errors import classify
from services.sentiment.fetchers import SentimentProvider
from services.sentiment.keys import EntityKey, entity_key
from services.sentiment.state import DashboardState
from services.sentiment.store import SentiStore
from services.sentiment.types import MarketContext


class Dispatcher:
    """Perform one fetch for one entity key and record the outcome.

    Foreground fetches drive ``loading``/``error`` on the dashboard state, but
    only while their key is still the one selected; background and prefetch
    fetches touch nothing except the cache and are never raised to the caller.
    """

    def __init__(
        self,
        provider: SentimentProvider,
        store: SentiStore,
        state: DashboardState,
        scope: TaskScope,
        *,
        metrics: Optional[Metrics] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.provider = provider
        self.store = store
        self.state = state
        self.scope = scope
        self.metrics = metrics or Metrics()
        self.log = logger or logging.getLogger("commodity_pulse.sentiment.dispatcher")
        self._foreground: Dict[EntityKey, asyncio.Task[None]] = {}

    def foreground_inflight(self, key: EntityKey) -> bool:
        task = self._foreground.get(key)
        return task is not None and not task.done()

    def _begin(self, key: EntityKey, foreground: bool) -> None:
        if foreground and self.state.owns(key):
            self.state.update(loading=True, error=None)

    async def dispatch(self, subject: str, context: MarketContext, foreground: bool = False) -> None:
        """Fetch ``subject`` under ``context`` and wait for the outcome."""

        key = entity_key(subject, context)
        self._begin(key, foreground)
        await self._run(key, foreground)

    def spawn(self, subject: str, context: MarketContext, foreground: bool = False) -> asyncio.Task[None]:
        """Start a dispatch as an owned task.

        Flags are set before returning, so callers observe ``loading=True``
        immediately. A foreground request for a key that already has a
        foreground fetch in flight joins that fetch instead of issuing another.
        """

        key = entity_key(subject, context)
        if foreground:
            existing = self._foreground.get(key)
            if existing is not None and not existing.done():
                self._begin(key, foreground)
                return existing
        task = self.scope.spawn(self._run(key, foreground), name=f"dispatch:{key}")
        self._begin(key, foreground)
        if foreground:
            self._foreground[key] = task
            task.add_done_callback(lambda done, key=key: self._release(key, done))
        return task

    def _release(self, key: EntityKey, task: asyncio.Task[None]) -> None:
        if self._foreground.get(key) is task:
            del self._foreground[key]

    async def _run(self, key: EntityKey, foreground: bool) -> None:
        mode = "foreground" if foreground else "background"
        self.metrics.inc(f"sentiment_dispatch_started_{mode}")
        try:
            result = await self.provider.request_sentiment(key.subject, key.context)
        except asyncio.CancelledError:
            if foreground and self.state.owns(key):
                self.state.update(loading=False)
            raise
        except Exception as exc:
            error = classify(exc)
            self.metrics.inc(f"sentiment_dispatch_failed_{error.kind}")
            extra = with_trace({"key": str(key), "mode": mode, "kind": error.kind, "error": error.detail})
            if not foreground:
                self.log.warning("sentiment.dispatch.failed", extra=extra)
                return
            self.log.error("sentiment.dispatch.failed", extra=extra, exc_info=exc)
            if self.state.owns(key):
                self.state.update(loading=False, error=error)
            return

        self.store.put(key, result)
        self.metrics.inc("sentiment_dispatch_ok")
        self.metrics.set("sentiment_cache_entries", float(len(self.store)))
        self.log.info("sentiment.dispatch.ok", extra={"key": str(key), "mode": mode})
        if foreground and self.state.owns(key):
            self.state.update(loading=False)


__all__ = ["Dispatcher"]
