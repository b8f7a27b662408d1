"""Entry-point for Commodity Pulse command-line operations."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

import orjson
from dotenv import load_dotenv

from core.config import get_dashboard_config
from core.runtime_flags import get_runtime_flags
from services.runtime.logging import setup_logging
from services.sentiment.keys import EntityKey
from services.sentiment.session import DashboardSession, build_provider
from services.sentiment.store import CACHE_UPDATED
from services.sentiment.types import MarketContext

log = logging.getLogger("commodity_pulse.cli")


def _load_env() -> None:
    load_dotenv(override=False)


def _setup_logging() -> None:
    flags = get_runtime_flags()
    setup_logging(Path(flags.log_file) if flags.log_file else None, flags.log_level)


def cmd_check() -> int:
    _load_env()
    flags = get_runtime_flags()
    try:
        config = get_dashboard_config(flags)
    except (OSError, ValueError) as exc:
        print(f"NOT READY: invalid dashboard config: {exc}")
        return 1
    if not flags.mock_mode and not flags.gemini_key_present:
        print("NOT READY: missing GEMINI_API_KEY (or set MOCK_MODE=true)")
        return 1
    print(
        f"READY: {len(config.subjects)} subjects, context={config.default_context.value}, "
        f"period={config.refresh_period_sec:g}s, inference={flags.inference_mode}"
    )
    return 0


async def _fetch(subject: str, context: MarketContext) -> int:
    config = get_dashboard_config()
    if subject not in config.subjects:
        config = config.with_overrides(subjects=config.subjects + (subject,))
    session = DashboardSession(config, build_provider())
    # no warm-up or timer: a single foreground request
    session.state.update(context=context)
    try:
        task = session.select(subject)
        if task is not None:
            await task
    finally:
        await session.aclose()
    if session.state.error is not None:
        print(session.state.error_message, file=sys.stderr)
        return 2
    result = session.api.current()
    if result is None:
        print("no result", file=sys.stderr)
        return 2
    sys.stdout.write(orjson.dumps(result.model_dump(mode="json"), option=orjson.OPT_INDENT_2).decode())
    sys.stdout.write("\n")
    return 0


def cmd_fetch(subject: str, context: str) -> int:
    _load_env()
    _setup_logging()
    return asyncio.run(_fetch(subject, MarketContext(context)))


async def _run(duration: float | None) -> None:
    config = get_dashboard_config()
    async with DashboardSession(config, build_provider()) as session:

        def _on_cache(key: EntityKey) -> None:
            result = session.store.get(key)
            if result is None:
                return
            log.info(
                "dashboard.cache.updated",
                extra={
                    "key": str(key),
                    "current_score": result.current.score,
                    "current_label": result.current.label,
                    "drivers": len(result.drivers),
                    "sources": len(result.sources),
                },
            )

        session.subscribe(CACHE_UPDATED, _on_cache)
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)


def cmd_run(duration: float | None = None) -> int:
    _load_env()
    _setup_logging()
    try:
        asyncio.run(_run(duration))
    except KeyboardInterrupt:  # pragma: no cover - manual interruption
        return 130
    return 0


def cmd_demo(duration: float | None) -> int:
    os.environ["MOCK_MODE"] = "true"
    os.environ.setdefault("REFRESH_PERIOD_SEC", "2")
    return cmd_run(duration)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="commodity-pulse", description="Commodity Pulse control CLI")
    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("check", help="Verify configuration and credentials are present")

    fetch_parser = sub.add_parser("fetch", help="Fetch sentiment for one subject and print it as JSON")
    fetch_parser.add_argument("subject")
    fetch_parser.add_argument(
        "--context",
        choices=[ctx.value for ctx in MarketContext],
        default=MarketContext.INDIA.value,
    )

    for name, help_text in (
        ("run", "Run the headless dashboard refresh loop"),
        ("demo", "Run the refresh loop against the offline mock provider"),
    ):
        run_parser = sub.add_parser(name, help=help_text)
        run_parser.add_argument(
            "--duration",
            type=float,
            default=None,
            help="Stop after this many seconds (default: run until interrupted)",
        )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "check":
        return cmd_check()
    if args.cmd == "fetch":
        return cmd_fetch(args.subject, args.context)
    if args.cmd == "run":
        return cmd_run(args.duration)
    if args.cmd == "demo":
        return cmd_demo(args.duration)

    parser.print_help()
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
