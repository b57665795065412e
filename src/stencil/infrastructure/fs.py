"""File-system helpers (atomic writes, JSON, mtimes) isolated from template logic."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import orjson


def _atomic_write_bytes(path: Path, data: bytes) -> None:
    tmp = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    try:
        tmp.write_bytes(data)
        os.replace(tmp, path)
    finally:
        tmp.unlink(missing_ok=True)


def write_text(path: str | Path, text: str) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_bytes(p, text.encode("utf-8"))
    return p


def write_json(path: str | Path, data: Any) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_bytes(p, orjson.dumps(data, option=orjson.OPT_INDENT_2))
    return p


def read_json(path: str | Path) -> Any | None:
    """Return decoded JSON, or None when the file is missing."""
    p = Path(path)
    try:
        return orjson.loads(p.read_bytes())
    except FileNotFoundError:
        return None


def read_text(path: str | Path) -> str:
    return Path(path).read_text(encoding="utf-8")


def mtime(path: str | Path) -> float | None:
    try:
        return Path(path).stat().st_mtime
    except FileNotFoundError:
        return None


def mtime_ns(path: str | Path) -> int:
    """Nanosecond mtime, 0 for a missing file."""
    try:
        return Path(path).stat().st_mtime_ns
    except FileNotFoundError:
        return 0


def remove(path: str | Path) -> bool:
    p = Path(path)
    try:
        p.unlink()
    except FileNotFoundError:
        return False
    return True
