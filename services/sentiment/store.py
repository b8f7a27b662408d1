"""In-memory sentiment cache keyed by (subject, context)."""
from __future__ import annotations

from typing import Dict, List, Optional

from core.event_bus import EventBus
from services.sentiment.keys import EntityKey
from services.sentiment.types import SentimentResult

CACHE_UPDATED = "sentiment.cache.updated"


class SentiStore:
    """Last-known result per entity key.

    Entries are only ever overwritten, never removed; the latest completed
    ``put`` for a key wins. Every write is announced on the bus under
    :data:`CACHE_UPDATED` with the written key as payload.
    """

    def __init__(self, bus: Optional[EventBus] = None) -> None:
        self.bus = bus
        self._by_key: Dict[EntityKey, SentimentResult] = {}

    def get(self, key: EntityKey) -> Optional[SentimentResult]:
        return self._by_key.get(key)

    def put(self, key: EntityKey, result: SentimentResult) -> None:
        self._by_key[key] = result
        if self.bus is not None:
            self.bus.emit(CACHE_UPDATED, key)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __len__(self) -> int:
        return len(self._by_key)

    def keys(self) -> List[EntityKey]:
        return list(self._by_key)


__all__ = ["CACHE_UPDATED", "SentiStore"]
