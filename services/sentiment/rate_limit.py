"""Bounded backoff for upstream throttling responses."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from services.sentiment.errors import RateLimitError

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def _extract_retry_after(headers: object) -> float | None:
    if not isinstance(headers, dict):
        return None
    retry_after = headers.get("Retry-After")
    if retry_after is None:
        return None
    try:
        return float(retry_after)
    except (TypeError, ValueError):
        return None


def _is_throttled(exc: Exception) -> bool:
    status = getattr(exc, "code", None) or getattr(exc, "status_code", None)
    if status == 429:
        return True
    return str(getattr(exc, "status", "") or "").upper() == "RESOURCE_EXHAUSTED"


async def backoff_request(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 5,
    *,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Execute an async call, backing off on HTTP 429 responses.

    With ``max_retries=0`` a throttled call fails immediately as
    :class:`RateLimitError`; every other failure propagates untouched.
    """

    delay = 1.0
    for attempt in range(max_retries + 1):
        try:
            return await fn()
        except Exception as exc:
            if not _is_throttled(exc):
                raise
            retry_after = _extract_retry_after(getattr(exc, "headers", {}))
            if retry_after is not None:
                delay = max(delay, retry_after)
            if attempt == max_retries:
                raise RateLimitError(str(exc)) from exc
            await sleep(delay)
            delay = min(delay * 2, 30.0)
    raise RateLimitError("Max retries exceeded after 429 responses")


__all__ = ["backoff_request"]
