"""Command-line entry point."""

from __future__ import annotations

import os
import subprocess
import sys

import orjson

from cli.main import build_parser, main


def _run(args: list[str], env: dict[str, str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "cli.main", *args],
        env=env,
        capture_output=True,
        text=True,
    )


def _base_env() -> dict[str, str]:
    env = dict(os.environ)
    for name in ("GEMINI_API_KEY", "SUBJECTS", "DASHBOARD_CONFIG", "DEFAULT_CONTEXT", "REFRESH_PERIOD_SEC"):
        env.pop(name, None)
    env["LOG_LEVEL"] = "ERROR"
    return env


def test_cli_check_ready() -> None:
    base_env = _base_env()
    base_env["MOCK_MODE"] = "false"

    missing = _run(["check"], base_env)
    assert missing.returncode != 0
    assert "NOT READY" in missing.stdout

    ready_env = dict(base_env)
    ready_env["GEMINI_API_KEY"] = "key"
    ready = _run(["check"], ready_env)
    assert ready.returncode == 0
    assert "READY" in ready.stdout
    assert "inference=gemini" in ready.stdout

    mock_env = dict(base_env)
    mock_env["MOCK_MODE"] = "true"
    mock = _run(["check"], mock_env)
    assert mock.returncode == 0
    assert "inference=mock" in mock.stdout


def test_cli_fetch_prints_json_in_mock_mode() -> None:
    env = _base_env()
    env["MOCK_MODE"] = "true"

    result = _run(["fetch", "Wheat", "--context", "Global"], env)

    assert result.returncode == 0, result.stderr
    payload = orjson.loads(result.stdout[result.stdout.index("{"):])
    assert set(payload) >= {"historical", "current", "long_term", "drivers", "sources"}
    assert len(payload["drivers"]) == 4


def test_parser_knows_commands() -> None:
    parser = build_parser()
    args = parser.parse_args(["run", "--duration", "1.5"])
    assert args.cmd == "run"
    assert args.duration == 1.5
    assert parser.parse_args(["fetch", "Sugar"]).context == "India"


def test_demo_runs_for_bounded_duration(monkeypatch) -> None:
    monkeypatch.setenv("MOCK_MODE", "true")
    monkeypatch.setenv("REFRESH_PERIOD_SEC", "0.05")
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    assert main(["demo", "--duration", "0.2"]) == 0
