"""Domain layer: models and errors shared by compiler, cache and engine."""

from .errors import (
    CacheDirectoryError,
    CircularDependencyError,
    CompileError,
    RenderError,
    StencilError,
    TemplateNotFoundError,
    TemplateSyntaxError,
    UnknownFilterError,
)
from .models import CacheIndexRecord, CacheMetadata, CompilationResult, EngineConfig

__all__ = [
    "CacheDirectoryError",
    "CacheIndexRecord",
    "CacheMetadata",
    "CircularDependencyError",
    "CompilationResult",
    "CompileError",
    "EngineConfig",
    "RenderError",
    "StencilError",
    "TemplateNotFoundError",
    "TemplateSyntaxError",
    "UnknownFilterError",
]
