"""Sentiment service package initialization."""

__all__ = [
    "types",
    "keys",
    "store",
    "state",
    "errors",
    "rate_limit",
    "fetchers",
    "mock",
    "dispatcher",
    "prefetch",
    "poller",
    "controller",
    "api",
    "session",
]
