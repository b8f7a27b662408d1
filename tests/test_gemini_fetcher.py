"""Gemini adapter: prompt/config building, response parsing, citations."""

from __future__ import annotations

import asyncio
import types

import orjson
import pytest

from services.sentiment.errors import AuthError, RateLimitError, UnclassifiedError
from services.sentiment.fetchers import (
    GeminiSentimentClient,
    GeminiSettings,
    build_prompt,
    extract_sources,
    parse_response,
)
from services.sentiment.types import Impact, MarketContext

PAYLOAD = {
    "historical": {"score": 40, "label": "Bullish", "summary": "Strong procurement."},
    "current": {"score": -12.5, "label": "Neutral", "summary": "Arrivals steady."},
    "longTerm": {"score": 65, "label": "Bullish", "summary": "Tight stocks ahead."},
    "drivers": [
        {"factor": "Monsoon", "impact": "Positive", "description": "Good rains", "evidence": "IMD forecast"},
        {"factor": "Exports", "impact": "negative", "description": "Duty raised", "evidence": "DGFT notice"},
        {"factor": "MSP", "impact": "neutral", "description": "Unchanged", "evidence": "CACP"},
        {"factor": "Ports", "impact": "neutral", "description": "Normal", "evidence": "Port trust"},
    ],
}


def _response(payload: object, chunks: list | None = None) -> types.SimpleNamespace:
    metadata = types.SimpleNamespace(grounding_chunks=chunks)
    candidate = types.SimpleNamespace(grounding_metadata=metadata)
    text = payload if isinstance(payload, str) else orjson.dumps(payload).decode()
    return types.SimpleNamespace(text=text, candidates=[candidate])


class FakeModels:
    def __init__(self, responses: list) -> None:
        self.responses = list(responses)
        self.requests: list[dict] = []

    async def generate_content(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class Throttled(Exception):
    def __init__(self) -> None:
        super().__init__("429 RESOURCE_EXHAUSTED")
        self.code = 429
        self.headers = {"Retry-After": "0"}


def _client(responses: list, sleep=None, **settings) -> tuple[GeminiSentimentClient, FakeModels]:
    models = FakeModels(responses)
    fake = types.SimpleNamespace(aio=types.SimpleNamespace(models=models))
    settings.setdefault("api_key", "test-key")
    client = GeminiSentimentClient(GeminiSettings(**settings), client=fake, sleep=sleep or asyncio.sleep)
    return client, models


def test_prompt_names_subject_and_context() -> None:
    prompt = build_prompt("Chana", MarketContext.GLOBAL)
    assert "Chana (Global)" in prompt
    assert "{score: -100 to 100" in prompt


def test_parse_response_builds_result() -> None:
    result = parse_response(orjson.dumps(PAYLOAD).decode(), [])
    assert result.long_term.score == 65
    assert result.current.score == -12.5
    assert result.drivers[0].impact is Impact.POSITIVE
    assert len(result.drivers) == 4
    assert result.sources == ()


@pytest.mark.parametrize(
    "text",
    ["not json", "[1, 2]", orjson.dumps({"current": {"score": 500, "label": "x", "summary": "y"}}).decode()],
)
def test_parse_response_rejects_bad_output(text: str) -> None:
    with pytest.raises(UnclassifiedError):
        parse_response(text, [])


def test_extract_sources_defaults_missing_fields() -> None:
    chunks = [
        types.SimpleNamespace(web=types.SimpleNamespace(title="Economic Times", uri="https://et.example/a")),
        types.SimpleNamespace(web=types.SimpleNamespace(title=None, uri=None)),
        types.SimpleNamespace(web=None),
    ]
    sources = extract_sources(_response({}, chunks))
    assert [(s.title, s.url) for s in sources] == [
        ("Economic Times", "https://et.example/a"),
        ("Source", "#"),
        ("Source", "#"),
    ]
    assert extract_sources(types.SimpleNamespace(candidates=None)) == []


@pytest.mark.asyncio
async def test_request_sentiment_attaches_citations() -> None:
    chunk = types.SimpleNamespace(web=types.SimpleNamespace(title="iGrain", uri="https://igrain.example"))
    client, models = _client([_response(PAYLOAD, [chunk])], model="gemini-test")

    result = await client.request_sentiment("Wheat", MarketContext.INDIA)

    assert result.sources[0].title == "iGrain"
    request = models.requests[0]
    assert request["model"] == "gemini-test"
    assert "Wheat (India)" in request["contents"]
    assert request["config"].response_mime_type == "application/json"
    assert request["config"].tools


@pytest.mark.asyncio
async def test_missing_api_key_is_auth_error() -> None:
    client = GeminiSentimentClient(GeminiSettings(api_key=None))
    with pytest.raises(AuthError):
        await client.request_sentiment("Wheat", MarketContext.INDIA)


@pytest.mark.asyncio
async def test_throttling_without_retry_budget_fails_fast() -> None:
    client, models = _client([Throttled()], rate_limit_retries=0)
    with pytest.raises(RateLimitError):
        await client.request_sentiment("Wheat", MarketContext.INDIA)
    assert len(models.requests) == 1


@pytest.mark.asyncio
async def test_throttling_retried_within_budget() -> None:
    slept: list[float] = []

    async def fake_sleep(delay: float) -> None:
        slept.append(delay)

    client, models = _client(
        [Throttled(), Throttled(), _response(PAYLOAD)], sleep=fake_sleep, rate_limit_retries=2
    )

    result = await client.request_sentiment("Sugar", MarketContext.GLOBAL)

    assert result.historical.score == 40
    assert len(models.requests) == 3
    assert slept == [1.0, 2.0]
