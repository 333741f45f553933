"""Observability for nodeward: bound logger and logging configuration."""

from .logger import BoundLogger, logger
from .logging import LogConfig, LogLevel, setup_logging, teardown_logging

__all__ = [
    "BoundLogger",
    "LogConfig",
    "LogLevel",
    "logger",
    "setup_logging",
    "teardown_logging",
]
