"""Logging & console helpers.

Features:
    * RichHandler based console logging (color, tracebacks)
    * Optional JSON logging mode (machine ingest)
    * ``get_console`` so the CLI and services share one rich Console.
"""

from __future__ import annotations

import json
import logging
import os

from rich.console import Console
from rich.logging import RichHandler

_INITIALIZED = False
_CONSOLE: Console | None = None


class _JsonHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - simple
        data = {
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exc_info"] = logging.Formatter().formatException(record.exc_info)
        print(json.dumps(data, ensure_ascii=False))


def setup_logging(level: str | None = None, json_mode: bool = False) -> None:
    """Install the root handler once; later calls are no-ops."""
    global _INITIALIZED
    if _INITIALIZED:
        return
    lvl_name = (level or os.getenv("STENCIL_LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO").upper()
    lvl = getattr(logging, lvl_name, logging.INFO)
    handler: logging.Handler
    if json_mode:
        handler = _JsonHandler()
    else:
        handler = RichHandler(console=get_console(stderr=True), rich_tracebacks=True, show_path=False)
    logging.basicConfig(level=lvl, handlers=[handler], force=True, format="%(message)s", datefmt="%H:%M:%S")
    _INITIALIZED = True


def get_console(stderr: bool = False) -> Console:
    """Return a shared rich Console (a separate one is built for stderr)."""
    global _CONSOLE
    if stderr:
        return Console(stderr=True)
    if _CONSOLE is None:
        _CONSOLE = Console()
    return _CONSOLE


__all__ = ["get_console", "setup_logging"]
