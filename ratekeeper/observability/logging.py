from __future__ import annotations

import logging
from typing import Any, Literal

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


def configure_logging(*, level: LogLevel = "INFO", json_logs: bool = True) -> None:
    """Configure stdlib logging + structlog.

    JSON is the default so log collectors can parse per-connection decisions.
    """

    logging.basicConfig(level=getattr(logging, level), format="%(message)s")

    processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "ratekeeper") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def loop_exception_logger(logger):
    """Build an asyncio exception handler that reports through structlog.

    asyncio reports failed accept() calls here instead of raising, so this keeps
    them in the same log stream as everything else.
    """

    def _handler(loop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        logger.error(
            "loop.error",
            message=context.get("message"),
            error=repr(exc) if exc is not None else None,
        )

    return _handler
