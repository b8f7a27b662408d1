"""Public read-only surface for dashboard consumers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from services.sentiment.keys import entity_key
from services.sentiment.state import DashboardState
from services.sentiment.store import SentiStore
from services.sentiment.types import MarketContext, SentimentResult


def tone_for(score: float) -> str:
    if score > 20:
        return "Bullish"
    if score < -20:
        return "Bearish"
    return "Neutral"


@dataclass(frozen=True, slots=True)
class TickerRow:
    subject: str
    score: Optional[float]
    label: Optional[str]
    tone: Optional[str]
    highlighted: bool


class SentiAPI:
    """What the presentation layer may read; it never writes through here."""

    def __init__(self, store: SentiStore, state: DashboardState) -> None:
        self.store = store
        self.state = state

    @property
    def subjects(self) -> tuple[str, ...]:
        return self.state.subjects

    def get_sentiment(self, subject: str, context: MarketContext | str | None = None) -> Optional[SentimentResult]:
        return self.store.get(entity_key(subject, context or self.state.context))

    def current(self) -> Optional[SentimentResult]:
        key = self.state.selected_key
        return self.store.get(key) if key is not None else None

    def phase(self) -> str:
        """Joint view of selection, loading and error.

        One of ``overview``, ``loading``, ``error``, ``loaded`` or ``empty``
        (selected but nothing cached and nothing in flight).
        """

        if self.state.selection is None:
            return "overview"
        if self.state.loading:
            return "loading"
        if self.state.error is not None:
            return "error"
        if self.current() is not None:
            return "loaded"
        return "empty"

    def ticker(self, context: MarketContext | str | None = None) -> List[TickerRow]:
        ctx = MarketContext(context or self.state.context)
        rows: List[TickerRow] = []
        for index, subject in enumerate(self.state.subjects):
            result = self.store.get(entity_key(subject, ctx))
            score = result.current.score if result is not None else None
            rows.append(
                TickerRow(
                    subject=subject,
                    score=score,
                    label=result.current.label if result is not None else None,
                    tone=tone_for(score) if score is not None else None,
                    highlighted=index == self.state.cursor,
                )
            )
        return rows


__all__ = ["SentiAPI", "TickerRow", "tone_for"]
