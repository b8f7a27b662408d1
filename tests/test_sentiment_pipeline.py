"""Integration tests for the refresh pipeline: poller -> dispatcher -> store."""

from __future__ import annotations

from typing import Dict, List

import pytest

from services.sentiment.keys import entity_key
from services.sentiment.store import CACHE_UPDATED
from services.sentiment.types import MarketContext, SentimentResult
from tests.fakes.fake_provider import make_result


class _StaticProvider:
    """Test helper that returns deterministic scores per subject."""

    def __init__(self, scores: Dict[str, List[float]]) -> None:
        self.scores = {subject: list(values) for subject, values in scores.items()}

    async def request_sentiment(self, subject: str, context: MarketContext) -> SentimentResult:
        return make_result(self.scores[subject].pop(0))


@pytest.mark.asyncio
async def test_pipeline_updates_store(make_session) -> None:
    provider = _StaticProvider({"Wheat": [12.0, 48.0], "Sugar": [-30.0, -5.0]})
    session = make_session(provider)
    updates = []
    session.subscribe(CACHE_UPDATED, updates.append)

    await session.prefetch.warm_all(session.state.subjects, MarketContext.INDIA)
    await session.poller.tick()
    await session.poller.tick()

    wheat = session.store.get(entity_key("Wheat", MarketContext.INDIA))
    sugar = session.store.get(entity_key("Sugar", MarketContext.INDIA))
    assert wheat is not None and wheat.current.score == 48.0
    assert sugar is not None and sugar.current.score == -5.0
    assert [str(key) for key in updates] == ["Wheat-India", "Sugar-India", "Sugar-India", "Wheat-India"]
    rows = session.api.ticker()
    assert [(row.subject, row.tone) for row in rows] == [("Wheat", "Bullish"), ("Sugar", "Neutral")]
    await session.aclose()
