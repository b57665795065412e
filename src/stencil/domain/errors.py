"""Error taxonomy for template compilation, caching and rendering.

Everything raised while turning template text into code is a ``CompileError``
(or one of its subclasses) carrying the path of the template being compiled.
Failures while executing compiled code surface as ``RenderError``.
"""
from __future__ import annotations

from pathlib import Path
from typing import Sequence


class StencilError(RuntimeError):
    """Base error for the template engine."""


class CompileError(StencilError):
    """Template compilation failed.

    ``template_path`` is filled in at the compile boundary when the error was
    raised deeper in the recursion without it. ``cause`` mirrors ``__cause__``
    for errors that wrap a foreign exception.
    """

    def __init__(
        self,
        message: str,
        *,
        template_path: str | Path | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.template_path = str(template_path) if template_path is not None else None
        self.cause = cause

    def __str__(self) -> str:
        if self.template_path:
            return f"Template compilation failed (template: {self.template_path}): {self.message}"
        return self.message


class TemplateNotFoundError(CompileError):
    """A template, extended parent or included file does not exist."""

    def __init__(self, name: str, path: str | Path | None = None, *, kind: str = "Template") -> None:
        where = f" ({path})" if path is not None else ""
        super().__init__(f"{kind} not found: {name}{where}")
        self.name = name
        self.path = str(path) if path is not None else None


class CircularDependencyError(CompileError):
    """An extends/include chain leads back to a template already being processed."""

    def __init__(self, path: str | Path, stack: Sequence[str | Path] = ()) -> None:
        chain = " -> ".join([*(str(p) for p in stack), str(path)])
        super().__init__(f"Circular template dependency detected: {path} [{chain}]")
        self.path = str(path)
        self.stack = [str(p) for p in stack]


class TemplateSyntaxError(CompileError):
    def __init__(self, message: str, token: str | None = None) -> None:
        super().__init__(f"{message}: {token!r}" if token is not None else message)
        self.token = token


class UnknownFilterError(CompileError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"Unknown filter '{name}' (register it on the FilterRegistry "
            "or enable allow_unsafe_calls)"
        )
        self.name = name


class RenderError(StencilError):
    """Executing compiled template code failed; no partial output is returned."""

    def __init__(self, template: str, cause: BaseException) -> None:
        super().__init__(f"Error rendering template {template}: {cause}")
        self.template = template
        self.cause = cause


class CacheDirectoryError(StencilError):
    """The compiled-template cache directory cannot be created."""

    def __init__(self, path: str | Path, cause: BaseException) -> None:
        super().__init__(f"Unable to create cache directory: {path} ({cause})")
        self.path = str(path)
        self.cause = cause


__all__ = [
    "CacheDirectoryError",
    "CircularDependencyError",
    "CompileError",
    "RenderError",
    "StencilError",
    "TemplateNotFoundError",
    "TemplateSyntaxError",
    "UnknownFilterError",
]
