"""Structural equality for reconciled resources."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from typing import Any


def _normalize(value: Any) -> Any:
    match value:
        case _ if is_dataclass(value) and not isinstance(value, type):
            return (
                type(value).__name__,
                tuple((f.name, _normalize(getattr(value, f.name))) for f in fields(value)),
            )
        case Mapping():
            return tuple(sorted((str(k), _normalize(v)) for k, v in value.items()))
        case list() | tuple():
            return tuple(_normalize(v) for v in value)
        case _:
            return value


def is_equal(a: Any, b: Any) -> bool:
    """Compare two values field by field, descending into nested maps.

    Dataclasses of different types never compare equal, and mappings compare
    by content regardless of their concrete type.
    """
    return _normalize(a) == _normalize(b)
