"""Sequential cache warm-up for every tracked subject."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from core.lifecycle import TaskScope
from services.runtime.logging import with_trace
from services.sentiment.dispatcher import Dispatcher
from services.sentiment.types import MarketContext


class PrefetchDriver:
    """Warm the cache one subject at a time.

    Each dispatch is awaited before the next starts, which keeps the warm-up
    at one outstanding request against the upstream rate limit.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        scope: TaskScope,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.scope = scope
        self.log = logger or logging.getLogger("commodity_pulse.sentiment.prefetch")
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def warm_all(self, subjects: Sequence[str], context: MarketContext) -> None:
        trace = with_trace({"context": context.value, "subjects": list(subjects)})
        self.log.info("sentiment.prefetch.start", extra=trace)
        for subject in subjects:
            # shielded: a superseded warm-up stops here but lets this fetch land
            inflight = self.dispatcher.spawn(subject, context, foreground=False)
            try:
                await asyncio.shield(inflight)
            except Exception:
                self.log.exception(
                    "sentiment.prefetch.subject_failed",
                    extra={"subject": subject, "context": context.value},
                )
        self.log.info("sentiment.prefetch.done", extra=trace)

    def start(self, subjects: Sequence[str], context: MarketContext) -> asyncio.Task[None]:
        """Replace any running warm-up with one for ``context``."""

        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = self.scope.spawn(
            self.warm_all(tuple(subjects), context), name=f"prefetch:{context.value}"
        )
        return self._task

    async def stop(self) -> None:
        await self.scope.cancel(self._task)
        self._task = None


__all__ = ["PrefetchDriver"]
