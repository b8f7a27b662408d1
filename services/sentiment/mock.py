"""Synthetic sentiment provider used for offline runs."""
from __future__ import annotations

import asyncio
import random
from collections import Counter
from typing import Tuple

from services.sentiment.api import tone_for
from services.sentiment.types import (
    Driver,
    Horizon,
    Impact,
    MarketContext,
    SentimentResult,
    Source,
)

_FACTORS: Tuple[Tuple[str, str], ...] = (
    ("Monsoon outlook", "Rainfall forecasts shift sowing expectations."),
    ("Export duty", "Policy changes alter export parity."),
    ("MSP revision", "Minimum support price moves set the floor for mandi prices."),
    ("Port congestion", "Warehouse and port throughput constrain arrivals."),
    ("Global benchmark", "International futures pull domestic quotes."),
    ("Currency", "Rupee moves change import parity."),
)


class MockSentimentClient:
    """Deterministic provider: the n-th call for a key always yields the same result."""

    def __init__(self, latency: float = 0.0) -> None:
        self.latency = latency
        self.calls: Counter[str] = Counter()

    def _horizon(self, rng: random.Random, subject: str, window: str) -> Horizon:
        score = round(rng.uniform(-100, 100), 1)
        label = tone_for(score)
        return Horizon(
            score=score,
            label=label,
            summary=f"{subject} sentiment over the {window} reads {label.lower()}.",
        )

    async def request_sentiment(self, subject: str, context: MarketContext) -> SentimentResult:
        key = f"{subject}-{context.value}"
        self.calls[key] += 1
        if self.latency:
            await asyncio.sleep(self.latency)
        rng = random.Random(f"{key}:{self.calls[key]}")
        drivers = tuple(
            Driver(
                factor=factor,
                impact=rng.choice(list(Impact)),
                description=description,
                evidence=f"Synthetic observation for {subject} ({context.value}).",
            )
            for factor, description in rng.sample(_FACTORS, 4)
        )
        return SentimentResult(
            historical=self._horizon(rng, subject, "last six months"),
            current=self._horizon(rng, subject, "last month"),
            long_term=self._horizon(rng, subject, "next six months"),
            drivers=drivers,
            sources=(Source(title="Mock feed", url="#"),),
        )


__all__ = ["MockSentimentClient"]
