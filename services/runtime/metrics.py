"""In-process dispatch counters and gauges."""

from __future__ import annotations

from typing import Dict


class Metrics:
    """In-process metrics container supporting counters and gauges."""

    def __init__(self) -> None:
        self._counters: Dict[str, float] = {}
        self._gauges: Dict[str, float] = {}

    def inc(self, name: str, amount: float = 1.0) -> None:
        self._counters[name] = self._counters.get(name, 0.0) + amount

    def set(self, name: str, value: float) -> None:
        self._gauges[name] = value

    def counter(self, name: str) -> float:
        return self._counters.get(name, 0.0)

    def gauge(self, name: str) -> float | None:
        return self._gauges.get(name)


__all__ = ["Metrics"]
