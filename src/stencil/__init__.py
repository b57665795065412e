"""stencil: compile a small template syntax to Python and cache it on disk."""

from stencil.domain.errors import (
    CacheDirectoryError,
    CircularDependencyError,
    CompileError,
    RenderError,
    StencilError,
    TemplateNotFoundError,
    TemplateSyntaxError,
    UnknownFilterError,
)
from stencil.domain.models import CompilationResult, EngineConfig
from stencil.infrastructure.templating import Compiler, FilterRegistry, TemplateEngine

__version__ = "0.1.0"

__all__ = [
    "CacheDirectoryError",
    "CircularDependencyError",
    "CompilationResult",
    "CompileError",
    "Compiler",
    "EngineConfig",
    "FilterRegistry",
    "RenderError",
    "StencilError",
    "TemplateEngine",
    "TemplateNotFoundError",
    "TemplateSyntaxError",
    "UnknownFilterError",
]
