"""Owned task scope with guaranteed cancellation on teardown."""
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any, Coroutine, Optional, Set, TypeVar

T = TypeVar("T")


class TaskScope:
    """Track every task started on behalf of a component.

    ``aclose`` cancels whatever is still running and waits for it, so no
    timer or fetch outlives the scope that started it.
    """

    def __init__(self, name: str = "scope", logger: Optional[logging.Logger] = None) -> None:
        self.name = name
        self.log = logger or logging.getLogger(f"commodity_pulse.{name}")
        self._tasks: Set[asyncio.Task[Any]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, T], *, name: Optional[str] = None) -> asyncio.Task[T]:
        if self._closed:
            coro.close()
            raise RuntimeError(f"task scope {self.name!r} is closed")
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.log.error(
                "task.failed",
                extra={"scope": self.name, "task": task.get_name()},
                exc_info=exc,
            )

    async def cancel(self, task: Optional[asyncio.Task[Any]]) -> None:
        """Cancel ``task`` and wait until it has finished unwinding."""

        if task is None or task.done():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def aclose(self) -> None:
        self._closed = True
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    async def __aenter__(self) -> "TaskScope":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["TaskScope"]
