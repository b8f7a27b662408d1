"""Value objects for commodity sentiment results."""

from __future__ import annotations

from enum import Enum
from typing import Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class MarketContext(str, Enum):
    """Analysis scope applied to every fetch."""

    INDIA = "India"
    GLOBAL = "Global"

    def __str__(self) -> str:
        return self.value


class Impact(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Horizon(_Frozen):
    """Sentiment for one time window."""

    score: float = Field(ge=-100, le=100)
    label: str
    summary: str


class Driver(_Frozen):
    """A factor moving sentiment, with the evidence behind it."""

    factor: str
    impact: Impact
    description: str
    evidence: str

    @field_validator("impact", mode="before")
    @classmethod
    def _normalise_impact(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class Source(_Frozen):
    title: str = "Source"
    url: str = "#"


class SentimentResult(_Frozen):
    """Immutable multi-horizon sentiment for one commodity under one context.

    ``historical`` covers the last six months, ``current`` up to one month and
    ``long_term`` one to six months ahead. At least four drivers are expected
    from the model but not enforced here.
    """

    historical: Horizon
    current: Horizon
    long_term: Horizon = Field(validation_alias=AliasChoices("long_term", "longTerm"))
    drivers: Tuple[Driver, ...] = ()
    sources: Tuple[Source, ...] = ()


__all__ = [
    "Driver",
    "Horizon",
    "Impact",
    "MarketContext",
    "SentimentResult",
    "Source",
]
