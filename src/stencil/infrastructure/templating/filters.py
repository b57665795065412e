"""Filter registry used by the compiler (name lookup) and the renderer (call).

One registry object is owned per engine; there is no process-wide filter table.
``raw`` is a sentinel: it switches off auto-escaping and transforms nothing.
"""
from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import orjson
from markupsafe import Markup, escape

from stencil.domain.errors import UnknownFilterError

Filter = Callable[[Any], Any]

RAW = "raw"


def escape_html(value: Any) -> Markup:
    """HTML-entity escape for auto-escaped output; ``None`` renders empty."""
    if value is None:
        return Markup("")
    return escape(value)


# ---------------------------- Default filters ---------------------------- #

def _f_upper(value: Any) -> str:
    return str(value).upper()


def _f_lower(value: Any) -> str:
    return str(value).lower()


def _f_tojson(value: Any) -> str:
    return orjson.dumps(value, default=str).decode("utf-8")


def _f_truncate(value: Any, length: int = 120, suffix: str = "…") -> str:
    s = str(value)
    return s if len(s) <= length else s[: max(0, length - len(suffix))] + suffix


def _f_trim(value: Any) -> str:
    return str(value).strip()


def _f_title(value: Any) -> str:
    return str(value).title()


_DEFAULTS: dict[str, Filter] = {
    "upper": _f_upper,
    "lower": _f_lower,
    "escape": escape_html,
    "length": len,
    "tojson": _f_tojson,
    "truncate": _f_truncate,
    "trim": _f_trim,
    "title": _f_title,
}


class FilterRegistry:
    """Mutable name -> unary transform mapping, seeded with the defaults."""

    def __init__(self, filters: dict[str, Filter] | None = None, *, defaults: bool = True) -> None:
        self._filters: dict[str, Filter] = dict(_DEFAULTS) if defaults else {}
        for name, fn in (filters or {}).items():
            self.add(name, fn)

    def resolve(self, name: str) -> Filter | None:
        """Return the transform for ``name``; None for unknown names and for ``raw``."""
        return self._filters.get(name)

    def require(self, name: str) -> Filter:
        fn = self.resolve(name)
        if fn is None:
            raise UnknownFilterError(name)
        return fn

    def add(self, name: str, fn: Filter) -> None:
        if name == RAW:
            raise ValueError("'raw' is reserved and cannot be redefined")
        if not callable(fn):
            raise TypeError(f"Filter '{name}' must be callable, got {type(fn).__name__}")
        self._filters[name] = fn

    @staticmethod
    def is_raw(name: str) -> bool:
        return name == RAW

    def names(self) -> list[str]:
        return sorted([*self._filters, RAW])

    def __contains__(self, name: object) -> bool:
        return name == RAW or name in self._filters

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())


__all__ = ["RAW", "Filter", "FilterRegistry", "escape_html"]
