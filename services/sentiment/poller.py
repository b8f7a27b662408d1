"""Round-robin background refresh of tracked subjects."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.lifecycle import TaskScope
from services.sentiment.dispatcher import Dispatcher
from services.sentiment.state import DashboardState

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_PERIOD_SEC = 45.0


class Poller:
    """Refresh exactly one subject per period.

    The request rate is bounded by ``1 / period`` regardless of how many
    subjects the dashboard tracks.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        state: DashboardState,
        scope: TaskScope,
        period: float = DEFAULT_PERIOD_SEC,
        *,
        sleep: Sleep = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if period <= 0:
            raise ValueError("refresh period must be positive")
        self.dispatcher = dispatcher
        self.state = state
        self.scope = scope
        self.period = period
        self._sleep = sleep
        self.log = logger or logging.getLogger("commodity_pulse.sentiment.poller")
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> asyncio.Task[None]:
        """Advance the cursor and refresh the subject it lands on, without waiting."""

        index = self.state.advance_cursor()
        subject = self.state.subjects[index]
        self.log.debug(
            "sentiment.poller.tick",
            extra={"subject": subject, "cursor": index, "context": self.state.context.value},
        )
        return self.dispatcher.spawn(subject, self.state.context, foreground=False)

    async def serve_forever(self) -> None:
        while True:
            await self._sleep(self.period)
            self.tick()

    def start(self) -> asyncio.Task[None]:
        """(Re)start the timer; a running timer is dropped and its wait discarded."""

        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = self.scope.spawn(self.serve_forever(), name="sentiment-poller")
        return self._task

    async def stop(self) -> None:
        await self.scope.cancel(self._task)
        self._task = None


__all__ = ["DEFAULT_PERIOD_SEC", "Poller"]
