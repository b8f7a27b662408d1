"""Transient UI-state for the sentiment dashboard."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from core.event_bus import EventBus
from services.sentiment.errors import SentimentError
from services.sentiment.keys import EntityKey, entity_key
from services.sentiment.types import MarketContext

STATE_CHANGED = "sentiment.state.changed"

_FIELDS = ("context", "selection", "loading", "error", "expanded_driver", "cursor")


@dataclass
class DashboardState:
    """Selection, loading and error flags plus the round-robin cursor.

    Mutations go through :meth:`update`, which announces the names of the
    fields that actually changed under :data:`STATE_CHANGED`.
    """

    subjects: Tuple[str, ...]
    context: MarketContext = MarketContext.INDIA
    selection: Optional[str] = None
    loading: bool = False
    error: Optional[SentimentError] = None
    expanded_driver: Optional[int] = None
    cursor: int = 0
    bus: Optional[EventBus] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.subjects = tuple(self.subjects)
        if not self.subjects:
            raise ValueError("dashboard state needs at least one subject")
        if not 0 <= self.cursor < len(self.subjects):
            raise ValueError(f"cursor {self.cursor} outside [0, {len(self.subjects)})")

    @property
    def error_message(self) -> Optional[str]:
        return self.error.user_message if self.error is not None else None

    @property
    def selected_key(self) -> Optional[EntityKey]:
        if self.selection is None:
            return None
        return entity_key(self.selection, self.context)

    @property
    def highlighted(self) -> str:
        return self.subjects[self.cursor]

    def update(self, **changes: object) -> Tuple[str, ...]:
        changed = []
        for name, value in changes.items():
            if name not in _FIELDS:
                raise AttributeError(f"unknown dashboard state field {name!r}")
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed.append(name)
        if changed and self.bus is not None:
            self.bus.emit(STATE_CHANGED, tuple(changed))
        return tuple(changed)

    def advance_cursor(self) -> int:
        nxt = (self.cursor + 1) % len(self.subjects)
        self.update(cursor=nxt)
        return nxt

    def owns(self, key: EntityKey) -> bool:
        """True while ``key`` is what the user is currently looking at."""

        return self.selection == key.subject and self.context == key.context


__all__ = ["DashboardState", "STATE_CHANGED"]
