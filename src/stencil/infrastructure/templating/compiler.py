"""Template compiler: source text -> CompilationResult{code, deps}.

Pipeline per unit of processing (the source, each extended parent, each
included file):

  * push the resolved path on the processing stack (cycle detection)
  * strip raw host-code blocks
  * resolve ``extends`` by merging named blocks into the parent text,
    repeating for multi-level chains
  * tokenize, inlining ``include`` targets recursively
  * generate Python code from the resulting node list (once, at the top)
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from stencil.domain.errors import (
    CircularDependencyError,
    CompileError,
    TemplateNotFoundError,
    TemplateSyntaxError,
)
from stencil.domain.models import CompilationResult
from stencil.infrastructure import fs

from .codegen import generate
from .filters import FilterRegistry
from .lexer import Include, Node, strip_host_code, tokenize

logger = logging.getLogger(__name__)

_EXTENDS_RE = re.compile(r"""\{%\s*extends\s+(['"])(?P<name>.+?)\1\s*%\}""", re.IGNORECASE)
_BLOCK_TAG_RE = re.compile(
    r"\{%\s*(?:block\s+(?P<name>\w+)|endblock(?:\s+\w+)?)\s*%\}", re.IGNORECASE
)
_PARENT_RE = re.compile(r"\{%\s*parent\s*%\}", re.IGNORECASE)


# ------------------------------ Block scanning ------------------------------ #

@dataclass(slots=True)
class BlockSpan:
    name: str
    start: int
    body_start: int
    body_end: int = -1
    end: int = -1
    children: list[BlockSpan] = field(default_factory=list)


def scan_blocks(text: str) -> list[BlockSpan]:
    """Return the top-level ``{% block %}`` spans of ``text`` (nesting aware)."""
    roots: list[BlockSpan] = []
    stack: list[BlockSpan] = []
    for m in _BLOCK_TAG_RE.finditer(text):
        if m.group("name"):
            span = BlockSpan(name=m.group("name"), start=m.start(), body_start=m.end())
            (stack[-1].children if stack else roots).append(span)
            stack.append(span)
            continue
        if not stack:
            raise TemplateSyntaxError("'endblock' without matching 'block'", m.group(0))
        span = stack.pop()
        span.body_end, span.end = m.start(), m.end()
    if stack:
        raise TemplateSyntaxError(f"Unclosed block '{stack[-1].name}'", text[stack[-1].start:stack[-1].body_start])
    return roots


def extract_blocks(text: str) -> dict[str, str]:
    """Block map: name -> body text, for blocks at any depth.

    A name repeated at the top level resolves to its last occurrence.
    """
    blocks: dict[str, str] = {}

    def visit(spans: list[BlockSpan], top: bool) -> None:
        for span in spans:
            body = text[span.body_start:span.body_end]
            if top:
                blocks[span.name] = body
            else:
                blocks.setdefault(span.name, body)
            visit(span.children, False)

    visit(scan_blocks(text), True)
    return blocks


def merge_blocks(parent: str, overrides: dict[str, str]) -> str:
    """Substitute child overrides into the parent's blocks.

    Block tags are kept so that a further ``extends`` level can see them;
    ``{% parent %}`` in an override is replaced by the (merged) parent body.
    """
    out: list[str] = []
    pos = 0
    for span in scan_blocks(parent):
        out.append(parent[pos:span.body_start])
        inherited = merge_blocks(parent[span.body_start:span.body_end], overrides)
        if span.name in overrides:
            out.append(_PARENT_RE.sub(lambda _m: inherited, overrides[span.name]))
        else:
            out.append(inherited)
        pos = span.body_end
    out.append(parent[pos:])
    return "".join(out)


# ------------------------------ Compile state ------------------------------ #

@dataclass(slots=True)
class _CompileState:
    """Dependencies and processing stack for one ``compile()`` call."""

    deps: list[str] = field(default_factory=list)
    stack: list[str] = field(default_factory=list)

    @contextmanager
    def enter(self, path: Path) -> Iterator[None]:
        key = str(path)
        if key in self.stack:
            raise CircularDependencyError(key, self.stack)
        self.stack.append(key)
        if key not in self.deps:
            self.deps.append(key)
        try:
            yield
        finally:
            self.stack.pop()


# --------------------------------- Compiler --------------------------------- #

class Compiler:
    """Compiles template text into Python code plus its dependency list."""

    def __init__(
        self,
        base_path: str | Path,
        filters: FilterRegistry | None = None,
        *,
        extension: str = ".tpl",
        allow_unsafe_calls: bool = False,
    ) -> None:
        self.base_path = Path(base_path)
        self.filters = filters if filters is not None else FilterRegistry()
        self.extension = extension
        self.allow_unsafe_calls = allow_unsafe_calls

    def compile(self, source: str, source_path: str | Path | None = None) -> CompilationResult:
        state = _CompileState()
        path = Path(source_path).resolve() if source_path is not None else None
        try:
            nodes = self._process(source, path, state)
            code = generate(
                nodes,
                self.filters,
                label=str(path) if path else "<string>",
                allow_unsafe_calls=self.allow_unsafe_calls,
            )
        except CompileError as exc:
            if exc.template_path is None and source_path is not None:
                exc.template_path = str(source_path)
            raise
        except Exception as exc:
            raise CompileError(str(exc), template_path=source_path, cause=exc) from exc
        logger.debug("Compiled %s (%d deps)", path or "<string>", len(state.deps))
        return CompilationResult(code=code, deps=state.deps)

    def compile_file(self, path: str | Path) -> CompilationResult:
        p = Path(path)
        if not p.is_file():
            raise TemplateNotFoundError(p.name, p)
        try:
            source = fs.read_text(p)
        except (OSError, UnicodeDecodeError) as exc:
            raise CompileError(str(exc), template_path=p, cause=exc) from exc
        return self.compile(source, p)

    def locate(self, name: str, directory: Path, *, kind: str = "Template") -> Path:
        filename = name if name.endswith(self.extension) else f"{name}{self.extension}"
        candidate = directory / filename
        if not candidate.is_file():
            raise TemplateNotFoundError(name, candidate, kind=kind)
        return candidate.resolve()

    # ------------------------------ internals ------------------------------ #

    def _process(self, text: str, path: Path | None, state: _CompileState) -> list[Node]:
        directory = path.parent if path is not None else self.base_path
        with ExitStack() as scope:
            if path is not None:
                scope.enter_context(state.enter(path))
            text = strip_host_code(text)
            text = self._resolve_extends(text, directory, state, scope)
            nodes: list[Node] = []
            for node in tokenize(text):
                if isinstance(node, Include):
                    included = self.locate(node.name, directory, kind="Included template")
                    nodes.extend(self._process(fs.read_text(included), included, state))
                else:
                    nodes.append(node)
            return nodes

    def _resolve_extends(self, text: str, directory: Path, state: _CompileState, scope: ExitStack) -> str:
        blocks: dict[str, str] = {}
        while (m := _EXTENDS_RE.search(text)) is not None:
            parent = self.locate(m.group("name"), directory, kind="Parent template")
            # parent stays on the processing stack for the rest of this unit
            scope.enter_context(state.enter(parent))
            blocks = {**blocks, **extract_blocks(text)}
            text = merge_blocks(strip_host_code(fs.read_text(parent)), blocks)
            directory = parent.parent
        return text


__all__ = ["BlockSpan", "Compiler", "extract_blocks", "merge_blocks", "scan_blocks"]
