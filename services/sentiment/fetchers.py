"""Inference clients that produce :class:`SentimentResult` values."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Protocol

import orjson
from google import genai
from google.genai import types as genai_types
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.sentiment.errors import AuthError, UnclassifiedError
from services.sentiment.rate_limit import Sleep, backoff_request
from services.sentiment.types import MarketContext, SentimentResult, Source

log = logging.getLogger("commodity_pulse.sentiment.fetchers")


class SentimentProvider(Protocol):
    """Anything able to answer one sentiment request."""

    async def request_sentiment(self, subject: str, context: MarketContext) -> SentimentResult:
        ...


class GeminiSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GEMINI_", extra="ignore")

    api_key: Optional[str] = Field(default=None)
    model: str = Field(default="gemini-3-flash-preview")
    rate_limit_retries: int = Field(default=0, ge=0)
    thinking_level: Optional[str] = Field(default=None)
    use_search: bool = Field(default=True)


PROMPT_TEMPLATE = """Executive multi-horizon sentiment analysis for {subject} ({context}).

SOURCES: Hindu Business Line, Economic Times, Financial Express, NDTV Profit, Krishi Jagran, iGrain, Tribune.

PILLARS:
1. WEATHER-POLICY: Impact of climate on export/import duties and MSP.
2. LOGISTICS: Port/warehouse status.
3. TRADE: Global benchmarks vs local prices.

HORIZONS:
- HISTORICAL (6m): Past performance.
- CURRENT (1m): Immediate sentiment (last 7 days).
- LONG TERM (1-6m): Future projections.

JSON OUTPUT:
- historical/current/longTerm: {{score: -100 to 100, label: string, summary: 2-sentence max}}
- drivers: [{{factor, impact, description, evidence}}] (Min 4)

Be concise. Use Google Search for latest data."""


def build_prompt(subject: str, context: MarketContext) -> str:
    return PROMPT_TEMPLATE.format(subject=subject, context=context.value)


def _horizon_schema() -> genai_types.Schema:
    return genai_types.Schema(
        type=genai_types.Type.OBJECT,
        properties={
            "score": genai_types.Schema(type=genai_types.Type.NUMBER),
            "label": genai_types.Schema(type=genai_types.Type.STRING),
            "summary": genai_types.Schema(type=genai_types.Type.STRING),
        },
        required=["score", "label", "summary"],
    )


def response_schema() -> genai_types.Schema:
    driver = genai_types.Schema(
        type=genai_types.Type.OBJECT,
        properties={
            "factor": genai_types.Schema(type=genai_types.Type.STRING),
            "impact": genai_types.Schema(
                type=genai_types.Type.STRING,
                enum=["positive", "negative", "neutral"],
            ),
            "description": genai_types.Schema(type=genai_types.Type.STRING),
            "evidence": genai_types.Schema(type=genai_types.Type.STRING),
        },
        required=["factor", "impact", "description", "evidence"],
    )
    return genai_types.Schema(
        type=genai_types.Type.OBJECT,
        properties={
            "historical": _horizon_schema(),
            "current": _horizon_schema(),
            "longTerm": _horizon_schema(),
            "drivers": genai_types.Schema(type=genai_types.Type.ARRAY, items=driver),
        },
        required=["historical", "current", "longTerm", "drivers"],
    )


def extract_sources(response: Any) -> List[Source]:
    """Collect web citations from the grounding metadata of the first candidate."""

    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []
    sources: List[Source] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        sources.append(
            Source(
                title=getattr(web, "title", None) or "Source",
                url=getattr(web, "uri", None) or "#",
            )
        )
    return sources


def parse_response(text: Optional[str], sources: List[Source]) -> SentimentResult:
    """Turn the model's JSON text plus citations into a validated result."""

    try:
        payload = orjson.loads(text or "{}")
    except orjson.JSONDecodeError as exc:
        raise UnclassifiedError(f"model returned invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise UnclassifiedError("model returned a non-object JSON payload")
    payload["sources"] = sources
    try:
        return SentimentResult.model_validate(payload)
    except ValidationError as exc:
        raise UnclassifiedError(f"model output failed validation: {exc.error_count()} errors") from exc


class GeminiSentimentClient:
    """Request grounded, schema-constrained sentiment from Gemini."""

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        client: Optional[genai.Client] = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings or GeminiSettings()
        self._client = client
        self._sleep = sleep

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self.settings.api_key:
                raise AuthError("GEMINI_API_KEY is not set")
            self._client = genai.Client(api_key=self.settings.api_key)
        return self._client

    def _config(self) -> genai_types.GenerateContentConfig:
        kwargs: dict[str, Any] = {
            "response_mime_type": "application/json",
            "response_schema": response_schema(),
        }
        if self.settings.use_search:
            kwargs["tools"] = [genai_types.Tool(google_search=genai_types.GoogleSearch())]
        if self.settings.thinking_level:
            kwargs["thinking_config"] = genai_types.ThinkingConfig(
                thinking_level=self.settings.thinking_level.upper()
            )
        return genai_types.GenerateContentConfig(**kwargs)

    async def request_sentiment(self, subject: str, context: MarketContext) -> SentimentResult:
        client = self._get_client()
        prompt = build_prompt(subject, context)
        config = self._config()

        async def _call() -> Any:
            return await client.aio.models.generate_content(
                model=self.settings.model,
                contents=prompt,
                config=config,
            )

        response = await backoff_request(
            _call, max_retries=self.settings.rate_limit_retries, sleep=self._sleep
        )
        sources = extract_sources(response)
        log.debug(
            "sentiment.gemini.response",
            extra={"subject": subject, "context": context.value, "sources": len(sources)},
        )
        return parse_response(response.text, sources)


__all__ = [
    "GeminiSentimentClient",
    "GeminiSettings",
    "SentimentProvider",
    "build_prompt",
    "extract_sources",
    "parse_response",
    "response_schema",
]
