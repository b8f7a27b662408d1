"""Failure taxonomy for sentiment inference calls."""
from __future__ import annotations

from typing import Optional

import httpx
from google.genai import errors as genai_errors


class SentimentError(Exception):
    """Base class for classified inference failures.

    ``user_message`` is what the dashboard shows; ``detail`` keeps the raw
    failure text for logs.
    """

    kind = "unclassified"
    default_message = "An unexpected error occurred while analyzing market sentiment."

    def __init__(self, detail: str = "", *, user_message: Optional[str] = None) -> None:
        super().__init__(detail or self.default_message)
        self.detail = detail
        self.user_message = user_message or self.default_message

    def __str__(self) -> str:
        return self.user_message


class AuthError(SentimentError):
    kind = "auth"
    default_message = "Gemini API Key is missing or invalid."


class NetworkError(SentimentError):
    kind = "network"
    default_message = "Network error: unable to reach the AI service."


class RateLimitError(SentimentError):
    kind = "rate_limit"
    default_message = "Rate limit exceeded. Please wait."


class UnclassifiedError(SentimentError):
    kind = "unclassified"

    def __init__(self, detail: str = "", *, user_message: Optional[str] = None) -> None:
        super().__init__(detail, user_message=user_message or f"Error: {detail or 'unknown failure'}")


_AUTH_CODES = {401, 403}
_AUTH_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED"}
_AUTH_MARKERS = ("api_key", "api key")
_NETWORK_MARKERS = ("network", "fetch", "connection")


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("code", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def classify(exc: BaseException) -> SentimentError:
    """Map any failure raised by an inference call onto the closed taxonomy."""

    if isinstance(exc, SentimentError):
        return exc

    detail = str(exc) or exc.__class__.__name__
    lowered = detail.lower()
    code = _status_code(exc)
    status = str(getattr(exc, "status", "") or "").upper()

    if code in _AUTH_CODES or status in _AUTH_STATUSES:
        return AuthError(detail)
    if code == 429 or status == "RESOURCE_EXHAUSTED":
        return RateLimitError(detail)
    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return NetworkError(detail)
    if isinstance(exc, genai_errors.APIError):
        if any(marker in lowered for marker in _AUTH_MARKERS):
            return AuthError(detail)
        return UnclassifiedError(detail)

    if any(marker in lowered for marker in _AUTH_MARKERS):
        return AuthError(detail)
    if any(marker in lowered for marker in _NETWORK_MARKERS):
        return NetworkError(detail)
    if "429" in lowered:
        return RateLimitError(detail)
    return UnclassifiedError(detail)


__all__ = [
    "AuthError",
    "NetworkError",
    "RateLimitError",
    "SentimentError",
    "UnclassifiedError",
    "classify",
]
