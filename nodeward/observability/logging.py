"""Logging configuration for nodeward.

Logging is silent by default (library behavior): the ``nodeward`` root
logger does not propagate and only carries a NullHandler. An orchestrator
turns it on with a LogConfig.

Example:
    from nodeward import LogConfig, setup_logging, teardown_logging

    handler_ids = setup_logging(LogConfig(level="DEBUG", console=True))
    try:
        outcome = await reconcile(resource, state)
    finally:
        teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .logger import logger

type LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Minimum log level for the console.
        file: Path to log file. None disables file output.
        console: Whether to log to stderr through rich.
        rotation: File rotation threshold (e.g., "50 MB").
        retention: Number of rotated files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = ".nodeward/nodeward.log"
    console: bool = False
    rotation: str = "50 MB"
    retention: int = 10


def setup_logging(config: LogConfig) -> list[int]:
    """Configure logging and return handler IDs for cleanup."""
    logger.enable("nodeward")
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(logger.add(sys.stderr, level=config.level))

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(
            logger.add(
                config.file,
                level="DEBUG",
                rotation=config.rotation,
                retention=config.retention,
                compression=True,
            )
        )

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove handlers added by setup_logging and silence the library again."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("nodeward")
