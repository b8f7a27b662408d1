"""Configuration management utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.runtime_flags import RuntimeFlags, get_runtime_flags
from services.sentiment.types import MarketContext


DEFAULT_SUBJECTS: tuple[str, ...] = ("Wheat", "Cashew", "Maize", "Chana", "Sugar")
DEFAULT_REFRESH_PERIOD_SEC = 45.0


class DashboardConfig(BaseModel):
    """Static description of what the dashboard tracks and how often it refreshes."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    subjects: tuple[str, ...] = Field(default=DEFAULT_SUBJECTS)
    default_context: MarketContext = Field(default=MarketContext.INDIA)
    refresh_period_sec: float = Field(default=DEFAULT_REFRESH_PERIOD_SEC, gt=0)
    reset_cursor_on_context_change: bool = Field(default=False)

    @field_validator("subjects", mode="before")
    @classmethod
    def validate_subjects(cls, value: Any) -> tuple[str, ...]:
        if isinstance(value, str):
            value = [part for part in value.split(",")]
        names = tuple(str(item).strip() for item in value if str(item).strip())
        if not names:
            raise ValueError("at least one subject must be tracked")
        if len(set(names)) != len(names):
            raise ValueError("subjects must be unique")
        return names

    def with_overrides(self, **overrides: object) -> "DashboardConfig":
        payload = self.model_dump()
        for key, value in overrides.items():
            if value is None or value == ():
                continue
            payload[key] = value
        return DashboardConfig(**payload)


def _read_config_payload(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    payload = yaml.safe_load(text) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"dashboard config {path} must be a mapping")
    return payload


def load_config(path: Path) -> DashboardConfig:
    """Load configuration from ``path``."""

    payload = _read_config_payload(path)
    return DashboardConfig(**payload)


def get_dashboard_config(flags: RuntimeFlags | None = None) -> DashboardConfig:
    """Resolve the dashboard config from an optional file plus env overrides."""

    flags = flags or get_runtime_flags()
    if flags.config_path:
        config = load_config(Path(flags.config_path))
    else:
        config = DashboardConfig()
    return config.with_overrides(
        subjects=flags.subjects,
        default_context=flags.default_context,
        refresh_period_sec=flags.refresh_period_sec,
    )


__all__ = [
    "DEFAULT_REFRESH_PERIOD_SEC",
    "DEFAULT_SUBJECTS",
    "DashboardConfig",
    "get_dashboard_config",
    "load_config",
]
