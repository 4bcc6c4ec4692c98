"""Logging configuration for Blockhost.

Every module logs through loguru with ``provider`` / ``component`` bound as
extras. Output is disabled by default (library behavior) and switched on by
the embedding application.

Example:
    from blockhost import LogConfig, logging_enabled

    with logging_enabled(LogConfig(level="DEBUG", file="blockhost.log")):
        await provider.create_server(descriptor)
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Literal

from loguru import logger

logger.disable("blockhost")

type LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[provider]}</magenta>:<cyan>{extra[component]}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[provider]}:{extra[component]} | {name}:{function}:{line} - {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Where and how verbosely Blockhost logs.

    Attributes:
        level: Minimum console level.
        file: Optional log file; it always receives DEBUG and above.
        console: Whether to log to stderr.
        rotation: File rotation policy (e.g. "50 MB", "1 day").
        retention: Number of rotated files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10


def _with_defaults(record: Any) -> bool:
    record["extra"].setdefault("provider", "-")
    record["extra"].setdefault("component", "-")
    return record["name"] is not None and record["name"].startswith("blockhost")


def setup_logging(config: LogConfig) -> list[int]:
    """Enable blockhost logging and return the added handler ids."""
    logger.enable("blockhost")
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(
            logger.add(
                sys.stderr,
                level=config.level,
                format=CONSOLE_FORMAT,
                colorize=True,
                filter=_with_defaults,
            )
        )

    if config.file:
        handler_ids.append(
            logger.add(
                config.file,
                level="DEBUG",
                format=FILE_FORMAT,
                rotation=config.rotation,
                retention=config.retention,
                diagnose=False,  # tracebacks may carry API tokens
                enqueue=True,
                filter=_with_defaults,
            )
        )

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("blockhost")


@contextmanager
def logging_enabled(config: LogConfig | None = None) -> Iterator[None]:
    handler_ids = setup_logging(config or LogConfig())
    try:
        yield
    finally:
        teardown_logging(handler_ids)
