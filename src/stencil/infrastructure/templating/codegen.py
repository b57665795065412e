"""Python code generation from template nodes.

The generated module body runs top-level statements against a namespace
prepared by the renderer, which injects the ``__stencil_*`` helpers.
"""
from __future__ import annotations

import keyword
import re
from collections.abc import Iterable

from stencil.domain.errors import TemplateSyntaxError, UnknownFilterError

from .filters import FilterRegistry
from .lexer import Echo, Include, Node, Tag, Text

EMIT = "__stencil_emit"
ESCAPE = "__stencil_escape"
FILTER = "__stencil_filter"
VAR = "__stencil_var"

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_DOTTED_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*")

# Opening keyword -> closing keyword.
_BLOCK_ENDS = {"if": "endif", "foreach": "endforeach", "for": "endfor"}
# Tags consumed by inheritance merging; left-overs render their body in place.
_TRANSPARENT = {"block", "endblock", "parent"}


class CodeBuilder:
    """Accumulates indented source lines."""

    INDENT_STEP = 4

    def __init__(self) -> None:
        self.lines: list[str] = []
        self._indent = 0
        self._opened_at: list[int] = []

    def add_line(self, line: str) -> None:
        self.lines.append(" " * self._indent + line)

    def open_block(self, line: str) -> None:
        self.add_line(line)
        self._indent += self.INDENT_STEP
        self._opened_at.append(len(self.lines))

    def close_block(self) -> None:
        if len(self.lines) == self._opened_at.pop():
            self.add_line("pass")
        self._indent -= self.INDENT_STEP

    def continue_block(self, line: str) -> None:
        """Close the current suite and open a sibling clause (``elif``/``else``)."""
        self.close_block()
        self.open_block(line)

    def __str__(self) -> str:
        return "\n".join(self.lines) + "\n"


def expression_code(expr: str) -> str:
    """A bare identifier becomes a variable lookup; anything else is verbatim."""
    if _IDENT_RE.fullmatch(expr) and not keyword.iskeyword(expr):
        return f"{VAR}({expr!r})"
    return f"({expr})"


def echo_code(node: Echo, filters: FilterRegistry, *, allow_unsafe_calls: bool = False) -> str:
    code = expression_code(node.expr)
    escaped = True
    for name in node.filters:
        if filters.is_raw(name):
            escaped = False
            continue
        if filters.resolve(name) is not None:
            code = f"{FILTER}({name!r})({code})"
        elif allow_unsafe_calls and _DOTTED_RE.fullmatch(name):
            code = f"{name}({code})"
        elif allow_unsafe_calls:
            raise TemplateSyntaxError("Invalid filter name", name)
        else:
            raise UnknownFilterError(name)
    return f"{ESCAPE}({code})" if escaped else code


def generate(
    nodes: Iterable[Node],
    filters: FilterRegistry,
    *,
    label: str = "<string>",
    allow_unsafe_calls: bool = False,
) -> str:
    code = CodeBuilder()
    code.add_line(f"# stencil compiled template: {label}")
    code.add_line("# Regenerated whenever the template or one of its dependencies changes.")
    ops: list[tuple[str, str]] = []

    for node in nodes:
        if isinstance(node, Text):
            code.add_line(f"{EMIT}({node.text!r})")
        elif isinstance(node, Echo):
            code.add_line(f"{EMIT}({echo_code(node, filters, allow_unsafe_calls=allow_unsafe_calls)})")
        elif isinstance(node, Include):
            raise TemplateSyntaxError("Unresolved include", node.source)
        elif isinstance(node, Tag):
            _tag(code, ops, node)

    if ops:
        raise TemplateSyntaxError(f"Unclosed '{ops[-1][0]}' tag", ops[-1][1])
    return str(code)


def _tag(code: CodeBuilder, ops: list[tuple[str, str]], node: Tag) -> None:
    kw, arg = node.keyword, node.argument
    if kw in _TRANSPARENT:
        return
    if kw in _BLOCK_ENDS:
        if not arg:
            raise TemplateSyntaxError(f"'{kw}' requires an expression", node.source)
        ops.append((kw, node.source))
        code.open_block(f"{'if' if kw == 'if' else 'for'} {arg}:")
    elif kw in ("elseif", "elif"):
        _expect_open(ops, "if", node)
        if not arg:
            raise TemplateSyntaxError(f"'{kw}' requires an expression", node.source)
        code.continue_block(f"elif {arg}:")
    elif kw == "else":
        _expect_open(ops, "if", node)
        code.continue_block("else:")
    elif kw in _BLOCK_ENDS.values():
        opener = next(k for k, v in _BLOCK_ENDS.items() if v == kw)
        _expect_open(ops, opener, node)
        ops.pop()
        code.close_block()
    else:
        raise TemplateSyntaxError(f"Unknown tag '{kw}'", node.source)


def _expect_open(ops: list[tuple[str, str]], opener: str, node: Tag) -> None:
    if not ops:
        raise TemplateSyntaxError(f"'{node.keyword}' without matching '{opener}'", node.source)
    if ops[-1][0] != opener:
        raise TemplateSyntaxError(f"Mismatched '{node.keyword}' (open: '{ops[-1][0]}')", node.source)


__all__ = ["CodeBuilder", "echo_code", "expression_code", "generate"]
