"""Domain models (Pydantic) for compiled templates, cache metadata and engine config."""
from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# -------------------- Compilation -------------------- #


class CompilationResult(BaseModel):
    """Generated Python code plus every file that influenced it.

    ``deps`` keeps first-seen order and holds no duplicates: the template file
    itself (when compiled from a path) followed by extended and included files.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    deps: list[str] = Field(default_factory=list)


# -------------------- Cache -------------------- #


class CacheMetadata(BaseModel):
    """Sidecar written next to a compiled artifact (``<fingerprint>.meta.json``)."""

    source: str
    deps: list[str] = Field(default_factory=list)
    compiled_at: float
    fingerprint: str
    unsafe_calls: bool = False


class CacheIndexRecord(BaseModel):
    """Points a source template at the fingerprint of its latest compiled artifact."""

    source: str
    fingerprint: str


# -------------------- Configuration -------------------- #


class EngineConfig(BaseModel):
    """User-authored configuration (YAML / env) for a TemplateEngine.

    ``cache_dir`` defaults to a ``cache`` directory beside ``template_dir``.

    The cache key covers file paths and mtimes only. Neither
    ``allow_unsafe_calls`` nor the engine's filter registry is part of it, so
    engines that differ in either should use separate cache directories.
    Entries compiled with ``allow_unsafe_calls`` are refused by an engine that
    disallows it and get recompiled there.
    """

    template_dir: Path = Path("templates")
    cache_dir: Path | None = None
    extension: str = ".tpl"
    allow_unsafe_calls: bool = False

    def resolved_cache_dir(self) -> Path:
        if self.cache_dir is not None:
            return self.cache_dir
        return self.template_dir / ".." / "cache"
