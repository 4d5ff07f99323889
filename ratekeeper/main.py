from __future__ import annotations

import argparse
import asyncio
from typing import Any

from .config.loader import load_settings
from .config.settings import Settings
from .domain.errors import StartupError
from .domain.window import SlidingWindowKeeper
from .net.server import DelayServer
from .observability.logging import configure_logging, get_logger, loop_exception_logger


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ratekeeper",
        description="Answer every TCP connection with the delay (seconds) to wait before calling a rate-limited service.",
    )

    p.add_argument("--service", required=True, help="Name of the rate-limited service; a label for operators and logs only")
    p.add_argument("--requests", type=int, required=True, help="Maximum number of requests allowed within the period")
    p.add_argument("--period", type=float, required=True, help="Period to enforce the rate over, in seconds")
    p.add_argument("--ip", required=True, help="Interface to bind to, normally 0.0.0.0")
    p.add_argument("--port", type=int, required=True, help="Port to bind to")

    p.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default=None)
    p.add_argument("--console-logs", action="store_true", help="Human-readable logs instead of JSON")

    return p


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    o: dict[str, Any] = {
        "limit": {
            "service": args.service,
            "requests": args.requests,
            "period": args.period,
        },
        "listen": {
            "ip": args.ip,
            "port": args.port,
        },
    }

    if args.log_level is not None:
        o.setdefault("logging", {})["level"] = args.log_level

    if args.console_logs:
        o.setdefault("logging", {})["json"] = False

    return o


async def _run(settings: Settings) -> None:
    configure_logging(level=settings.logging.level, json_logs=settings.logging.json_logs)
    logger = get_logger().bind(component="app", service=settings.limit.service)

    asyncio.get_running_loop().set_exception_handler(loop_exception_logger(logger))

    keeper = SlidingWindowKeeper(limit=settings.limit.requests, period_s=settings.limit.period)
    server = DelayServer(
        keeper=keeper,
        host=settings.listen.ip,
        port=settings.listen.port,
        logger=get_logger().bind(component="acceptor", service=settings.limit.service),
    )
    await server.start()

    logger.info(
        "server.start",
        requests=keeper.limit,
        period_s=keeper.period_s,
        base_delay_s=keeper.base_delay_s,
        ip=settings.listen.ip,
        port=server.port,
    )

    try:
        await server.serve_forever()
    finally:
        await server.close()


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(cli_overrides=_cli_overrides(args))
        asyncio.run(_run(settings))
    except StartupError as e:
        raise SystemExit(f"ratekeeper: {e}") from e
    return 0
