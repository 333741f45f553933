"""Bound logger backed by stdlib logging + rich.

Messages use ``str.format`` placeholders and bound context is appended to
every line::

    from nodeward.observability.logger import logger

    log = logger.bind(provider="triton", name="master")
    log.info("Created instance {identifier}", identifier="i-123")
    # Created instance i-123 [provider=triton name=master]

Records go to the stdlib logger of the calling module, so the usual
``logging`` level and filter configuration applies per nodeward module.
"""

from __future__ import annotations

import gzip
import logging
import logging.handlers
import os
import re
import shutil
import sys
from functools import partialmethod
from types import FrameType
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ROOT = "nodeward"
DEFAULT_ROTATION_BYTES = 50 * 1024 * 1024
DEFAULT_RETENTION = 10

_root = logging.getLogger(ROOT)
_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}
_ROTATION = re.compile(r"^\s*(\d+)\s*([KMG]?B)\s*$", re.IGNORECASE)


def _caller() -> FrameType:
    frame = sys._getframe(1)
    while frame.f_back is not None and frame.f_globals.get("__name__") in (__name__, "functools"):
        frame = frame.f_back
    return frame


def _stdlib_logger(frame: FrameType) -> logging.Logger:
    module = frame.f_globals.get("__name__", ROOT)
    return logging.getLogger(module if module.startswith(ROOT) else ROOT)


class BoundLogger:
    __slots__ = ("_extras",)

    def __init__(self, extras: dict[str, object] | None = None) -> None:
        self._extras = extras or {}

    @property
    def extras(self) -> dict[str, object]:
        return dict(self._extras)

    def bind(self, **kwargs: object) -> BoundLogger:
        return BoundLogger({**self._extras, **kwargs})

    def _render(self, message: str, args: tuple[object, ...], kwargs: dict[str, object]) -> str:
        text = message.format(*args, **kwargs) if args or kwargs else message
        if not self._extras:
            return text
        context = " ".join(f"{k}={v}" for k, v in self._extras.items())
        return f"{text} [{context}]"

    def _log(self, level: int, message: str, /, *args: object, **kwargs: object) -> None:
        exc_info = bool(kwargs.pop("exc_info", False))
        frame = _caller()
        target = _stdlib_logger(frame)
        if not target.isEnabledFor(level):
            return
        # Context travels as one attribute; keys like "name" would clash with LogRecord fields.
        record = target.makeRecord(
            target.name,
            level,
            frame.f_code.co_filename,
            frame.f_lineno,
            self._render(message, args, kwargs),
            (),
            sys.exc_info() if exc_info else None,
            func=frame.f_code.co_name,
            extra={"extras": self._extras},
        )
        target.handle(record)

    trace = partialmethod(_log, TRACE)
    debug = partialmethod(_log, logging.DEBUG)
    info = partialmethod(_log, logging.INFO)
    warning = partialmethod(_log, logging.WARNING)
    error = partialmethod(_log, logging.ERROR)

    def exception(self, message: str, /, *args: object, **kwargs: object) -> None:
        kwargs["exc_info"] = True
        self._log(logging.ERROR, message, *args, **kwargs)


# ─── Sinks ───────────────────────────────────────────────────────────


def _rotation_bytes(rotation: str | None) -> int:
    if rotation and (match := _ROTATION.match(rotation)):
        return int(match[1]) * _UNITS[match[2].upper()]
    return DEFAULT_ROTATION_BYTES


def _gzip_rotator(source: str, dest: str) -> None:
    with open(source, "rb") as f_in, gzip.open(dest, "wb") as f_out:
        shutil.copyfileobj(f_in, f_out)
    os.remove(source)


def _file_sink(
    path: str,
    level: int,
    rotation: str | None,
    retention: int | None,
    compression: bool,
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=_rotation_bytes(rotation),
        backupCount=DEFAULT_RETENTION if retention is None else retention,
    )
    if compression:
        handler.namer = lambda name: f"{name}.gz"
        handler.rotator = _gzip_rotator
    handler.setFormatter(logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(levelname)-8s | "
        "%(name)s:%(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    handler.setLevel(level)
    return handler


def _console_sink(stream: TextIO, level: int) -> logging.Handler:
    handler = RichHandler(
        level=level,
        console=Console(file=stream),
        show_path=True,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    return handler


def _level_number(level: str) -> int:
    match level.upper():
        case "TRACE":
            return TRACE
        case name if isinstance(number := logging.getLevelName(name), int):
            return number
        case _:
            return logging.DEBUG


class Logger(BoundLogger):
    """The package logger: a BoundLogger without context that also owns sinks.

    Sinks attach to the ``nodeward`` stdlib logger and are addressed by the
    integer id ``add`` returns.
    """

    __slots__ = ("_sinks", "_next_id")

    def __init__(self) -> None:
        super().__init__()
        self._sinks: dict[int, logging.Handler] = {}
        self._next_id = 0

    def add(
        self,
        sink: str | TextIO,
        *,
        level: str = "DEBUG",
        rotation: str | None = None,
        retention: int | None = None,
        compression: bool = False,
    ) -> int:
        """Attach a file path or text stream sink and return its id."""
        number = _level_number(level)
        match sink:
            case str() as path:
                handler = _file_sink(path, number, rotation, retention, compression)
            case stream:
                handler = _console_sink(stream, number)

        _root.addHandler(handler)
        self._next_id += 1
        self._sinks[self._next_id] = handler
        return self._next_id

    def remove(self, handler_id: int | None = None) -> None:
        """Detach and close one sink, or every sink when no id is given."""
        ids = list(self._sinks) if handler_id is None else [handler_id]
        for sink_id in ids:
            if handler := self._sinks.pop(sink_id, None):
                _root.removeHandler(handler)
                handler.close()

    def enable(self, name: str = ROOT) -> None:
        target = logging.getLogger(name)
        target.disabled = False
        target.setLevel(TRACE)

    def disable(self, name: str = ROOT) -> None:
        logging.getLogger(name).disabled = True


logger = Logger()

_root.setLevel(TRACE)
_root.propagate = False
_root.addHandler(logging.NullHandler())
