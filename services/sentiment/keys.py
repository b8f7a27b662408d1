"""Cache identity for (subject, context) pairs."""

from __future__ import annotations

from dataclasses import dataclass

from services.sentiment.types import MarketContext


@dataclass(frozen=True, slots=True)
class EntityKey:
    subject: str
    context: MarketContext

    def __str__(self) -> str:
        return f"{self.subject}-{self.context.value}"


def entity_key(subject: str, context: MarketContext | str) -> EntityKey:
    """Return the deterministic key for ``subject`` under ``context``."""

    return EntityKey(subject=subject, context=MarketContext(context))


__all__ = ["EntityKey", "entity_key"]
