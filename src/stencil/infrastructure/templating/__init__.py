"""Templating subsystem: lexer, code generation, compiler, renderer, engine."""

from .compiler import Compiler
from .engine import TemplateEngine
from .filters import FilterRegistry, escape_html

__all__ = ["Compiler", "FilterRegistry", "TemplateEngine", "escape_html"]
