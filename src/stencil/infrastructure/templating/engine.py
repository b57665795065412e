"""Template engine: resolve -> compile -> cache -> execute.

Current behaviour:
  * One FilterRegistry per engine, shared by compiler and renderer.
  * Durable file cache (recompile on any dependency mtime change); no
    compiled code is kept in memory between ``render`` calls.
  * Unchanged templates are served from the cache without compiling.
  * Failures are never swallowed: compile problems raise ``CompileError``,
    execution problems raise ``RenderError`` and discard partial output.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from stencil.domain.errors import RenderError, TemplateNotFoundError
from stencil.domain.models import CompilationResult, EngineConfig
from stencil.infrastructure.cache import CompiledTemplateCache, fingerprint

from .compiler import Compiler
from .filters import Filter, FilterRegistry
from .renderer import execute

logger = logging.getLogger(__name__)

# One recompilation after a stale entry is evicted.
_MAX_ATTEMPTS = 2


class TemplateEngine:
    def __init__(
        self,
        template_dir: str | Path,
        cache_dir: str | Path | None = None,
        *,
        extension: str = ".tpl",
        filters: FilterRegistry | None = None,
        allow_unsafe_calls: bool = False,
        compiler: Compiler | None = None,
    ) -> None:
        self.template_dir = Path(template_dir)
        self.extension = extension
        self.filters = filters if filters is not None else FilterRegistry()
        self.compiler = compiler or Compiler(
            self.template_dir,
            self.filters,
            extension=extension,
            allow_unsafe_calls=allow_unsafe_calls,
        )
        self.cache = CompiledTemplateCache(cache_dir or self.template_dir / ".." / "cache")
        self._globals: dict[str, Any] = {}

    @classmethod
    def from_config(cls, config: EngineConfig, **kwargs: Any) -> TemplateEngine:
        return cls(
            config.template_dir,
            config.resolved_cache_dir(),
            extension=config.extension,
            allow_unsafe_calls=config.allow_unsafe_calls,
            **kwargs,
        )

    # ------------------------------ public API ------------------------------ #

    def assign(self, key: str, value: Any) -> None:
        """Bind a variable for every subsequent render (per-call vars win)."""
        self._globals[key] = value

    def add_filter(self, name: str, fn: Filter) -> None:
        self.filters.add(name, fn)

    def resolve(self, name: str) -> Path:
        """Absolute path of template ``name`` (extension optional)."""
        filename = name if name.endswith(self.extension) else f"{name}{self.extension}"
        path = self.template_dir / filename
        if not path.is_file():
            raise TemplateNotFoundError(name, path)
        return path.resolve()

    def compile_template(self, name: str) -> CompilationResult:
        source_path = self.resolve(name)
        return self.compiler.compile_file(source_path)

    def render(self, name: str, variables: Mapping[str, Any] | None = None) -> str:
        source_path = self.resolve(name)
        code = self._load_code(source_path)
        return self._execute(name, code, variables, filename=str(source_path))

    def render_string(self, text: str, variables: Mapping[str, Any] | None = None) -> str:
        """Compile and execute ``text`` directly; nothing is cached."""
        result = self.compiler.compile(text)
        return self._execute("<string>", result.code, variables, filename="<string>")

    def clear_cache(self) -> int:
        return self.cache.clear()

    # ------------------------------ internals ------------------------------ #

    def _load_code(self, source_path: Path) -> str:
        for attempt in range(_MAX_ATTEMPTS):
            unsafe = self.compiler.allow_unsafe_calls
            entry = self.cache.lookup(source_path)
            if entry is None:
                result = self.compiler.compile_file(source_path)
                entry = self.cache.get(fingerprint(source_path, result.deps))
                if entry is None:
                    logger.debug("Cache miss for %s", source_path)
                    return self.cache.store(source_path, result, unsafe_calls=unsafe).read_code()
            if self.cache.is_valid(entry, allow_unsafe_calls=unsafe):
                logger.debug("Cache hit for %s (%s)", source_path, entry.fingerprint)
                self.cache.point_index(source_path, entry.fingerprint)
                return entry.read_code()
            logger.debug("Stale cache entry %s for %s (attempt %d)", entry.fingerprint, source_path, attempt + 1)
            self.cache.evict(entry)
        raise RenderError(
            str(source_path),
            RuntimeError(f"cache entry still stale after {_MAX_ATTEMPTS} attempts"),
        )

    def _execute(
        self,
        name: str,
        code: str,
        variables: Mapping[str, Any] | None,
        *,
        filename: str,
    ) -> str:
        context = {**self._globals, **(variables or {})}
        try:
            return execute(code, context, self.filters, filename=filename)
        except Exception as exc:
            raise RenderError(name, exc) from exc


__all__ = ["TemplateEngine"]
