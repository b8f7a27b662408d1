"""User-driven selection, retry and context switching."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from services.sentiment.dispatcher import Dispatcher
from services.sentiment.keys import entity_key
from services.sentiment.poller import Poller
from services.sentiment.prefetch import PrefetchDriver
from services.sentiment.state import DashboardState
from services.sentiment.store import SentiStore
from services.sentiment.types import MarketContext


class SelectionController:
    """Serve the selected subject from cache or fetch it in the foreground."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        store: SentiStore,
        state: DashboardState,
        prefetch: PrefetchDriver,
        poller: Poller,
        *,
        reset_cursor_on_context_change: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.store = store
        self.state = state
        self.prefetch = prefetch
        self.poller = poller
        self.reset_cursor_on_context_change = reset_cursor_on_context_change
        self.log = logger or logging.getLogger("commodity_pulse.sentiment.controller")

    def _ensure_open(self) -> None:
        if self.dispatcher.scope.closed:
            raise RuntimeError("sentiment session is closed")

    def select(self, subject: str) -> Optional[asyncio.Task[None]]:
        if subject not in self.state.subjects:
            raise KeyError(f"unknown subject {subject!r}")
        key = entity_key(subject, self.state.context)
        cached = key in self.store
        if not cached:
            self._ensure_open()
        self.state.update(
            selection=subject,
            expanded_driver=None,
            loading=self.dispatcher.foreground_inflight(key),
            error=None,
        )
        if cached:
            return None
        return self.dispatcher.spawn(subject, self.state.context, foreground=True)

    def retry(self) -> Optional[asyncio.Task[None]]:
        if self.state.selection is None:
            return None
        return self.dispatcher.spawn(self.state.selection, self.state.context, foreground=True)

    def deselect(self) -> None:
        # the outstanding fetch keeps running and still lands in the cache
        self.state.update(selection=None, expanded_driver=None, loading=False, error=None)

    def toggle_driver(self, index: int) -> None:
        if self.state.selection is None:
            return
        self.state.update(expanded_driver=None if self.state.expanded_driver == index else index)

    def set_context(self, context: MarketContext | str) -> bool:
        """Switch the global analysis scope; the cache is kept as is."""

        context = MarketContext(context)
        if context == self.state.context:
            return False
        self._ensure_open()
        changes: dict[str, object] = {"context": context, "error": None, "loading": False}
        if self.state.selection is not None:
            key = entity_key(self.state.selection, context)
            changes["loading"] = self.dispatcher.foreground_inflight(key)
        if self.reset_cursor_on_context_change:
            changes["cursor"] = 0
        self.state.update(**changes)
        self.log.info("sentiment.context.switched", extra={"context": context.value})
        self.prefetch.start(self.state.subjects, context)
        self.poller.start()
        return True


__all__ = ["SelectionController"]
