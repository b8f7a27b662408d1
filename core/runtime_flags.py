from __future__ import annotations

import os
import threading

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field


_FLAGS_CACHE: "RuntimeFlags | None" = None
_FLAGS_SIGNATURE: tuple[tuple[str, str | None], ...] | None = None
_CACHE_LOCK = threading.Lock()

_FALSEY = {"0", "false", "no", "off", "f", "n", ""}
_TRUEY = {"1", "true", "yes", "on", "t", "y"}


def parse_bool(value: object | None, default: bool = False) -> bool:
    """Coerce user-provided strings and booleans into a boolean."""

    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip()
    if not text:
        return False
    lowered = text.lower()
    if lowered in _TRUEY:
        return True
    if lowered in _FALSEY:
        return False
    return default


def _coerce_float(value: object | None, default: float | None) -> float | None:
    if value is None:
        return default
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def _split_csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


class RuntimeFlags(BaseModel):
    model_config = ConfigDict(frozen=True)

    mock_mode: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: str | None = Field(default=None)
    config_path: str | None = Field(default=None)
    subjects: tuple[str, ...] = Field(default=())
    default_context: str | None = Field(default=None)
    refresh_period_sec: float | None = Field(default=None)
    gemini_key_present: bool = Field(default=False)

    @property
    def inference_mode(self) -> str:
        if self.mock_mode:
            return "mock"
        return "gemini"


_SIGNATURE_KEYS = (
    "MOCK_MODE",
    "LOG_LEVEL",
    "LOG_FILE",
    "DASHBOARD_CONFIG",
    "SUBJECTS",
    "DEFAULT_CONTEXT",
    "REFRESH_PERIOD_SEC",
    "GEMINI_API_KEY",
)


def _env_signature() -> tuple[tuple[str, str | None], ...]:
    return tuple((name, os.getenv(name)) for name in _SIGNATURE_KEYS)


def _build_runtime_flags() -> RuntimeFlags:
    """Internal helper to hydrate :class:`RuntimeFlags` from the environment."""

    load_dotenv(override=False)

    context = (os.getenv("DEFAULT_CONTEXT") or "").strip() or None
    config_path = (os.getenv("DASHBOARD_CONFIG") or "").strip() or None
    log_file = (os.getenv("LOG_FILE") or "").strip() or None

    return RuntimeFlags(
        mock_mode=parse_bool(os.getenv("MOCK_MODE"), default=False),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper() or "INFO",
        log_file=log_file,
        config_path=config_path,
        subjects=_split_csv(os.getenv("SUBJECTS")),
        default_context=context,
        refresh_period_sec=_coerce_float(os.getenv("REFRESH_PERIOD_SEC"), None),
        gemini_key_present=bool((os.getenv("GEMINI_API_KEY") or "").strip()),
    )


def runtime_flags_from_env() -> RuntimeFlags:
    """Build :class:`RuntimeFlags` from environment variables without caching."""

    return _build_runtime_flags()


def get_runtime_flags() -> RuntimeFlags:
    global _FLAGS_CACHE, _FLAGS_SIGNATURE
    signature = _env_signature()
    with _CACHE_LOCK:
        if _FLAGS_CACHE is None or signature != _FLAGS_SIGNATURE:
            _FLAGS_CACHE = _build_runtime_flags()
            _FLAGS_SIGNATURE = signature
        return _FLAGS_CACHE


def refresh_runtime_flags() -> RuntimeFlags:
    global _FLAGS_CACHE, _FLAGS_SIGNATURE
    with _CACHE_LOCK:
        _FLAGS_CACHE = _build_runtime_flags()
        _FLAGS_SIGNATURE = _env_signature()
        return _FLAGS_CACHE


__all__ = [
    "RuntimeFlags",
    "get_runtime_flags",
    "parse_bool",
    "refresh_runtime_flags",
    "runtime_flags_from_env",
]
