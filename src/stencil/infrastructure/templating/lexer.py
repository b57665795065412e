"""Tokenizer: template text -> flat list of tagged nodes.

Nodes carry just enough to drive code generation; expressions stay as raw
Python text (they are never parsed here).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from stencil.domain.errors import TemplateSyntaxError

_TOKEN_RE = re.compile(r"(?s)({{.*?}}|{%.*?%}|{#.*?#})")
_TAG_RE = re.compile(r"(?s)^\s*(\w+)\s*(.*?)\s*$")
_QUOTED_NAME_RE = re.compile(r"""^(['"])(.+?)\1$""")

# Raw host-code blocks (<?py ... ?>, <?php ... ?>, <?= ... ?>) but not <?xml ... ?>.
HOST_CODE_RE = re.compile(r"<\?(?!xml)[\s\S]*?\?>", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class Text:
    text: str


@dataclass(frozen=True, slots=True)
class Echo:
    expr: str
    filters: tuple[str, ...] = field(default_factory=tuple)
    source: str = ""


@dataclass(frozen=True, slots=True)
class Tag:
    keyword: str
    argument: str
    source: str


@dataclass(frozen=True, slots=True)
class Include:
    name: str
    source: str


Node = Text | Echo | Tag | Include


def strip_host_code(text: str) -> str:
    return HOST_CODE_RE.sub("", text)


def split_pipes(expr: str) -> list[str]:
    """Split ``expr`` on ``|`` that sit outside string literals and brackets."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    start = 0
    i = 0
    while i < len(expr):
        ch = expr[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == "|" and depth == 0:
            parts.append(expr[start:i])
            start = i + 1
        i += 1
    parts.append(expr[start:])
    return [p.strip() for p in parts]


def _echo(token: str) -> Echo:
    body = token[2:-2].strip()
    if not body:
        raise TemplateSyntaxError("Empty expression", token)
    expr, *filters = split_pipes(body)
    if not expr or any(not f for f in filters):
        raise TemplateSyntaxError("Malformed filter chain", token)
    return Echo(expr=expr, filters=tuple(filters), source=token)


def _tag(token: str) -> Tag | Include:
    m = _TAG_RE.match(token[2:-2])
    if m is None:
        raise TemplateSyntaxError("Empty tag", token)
    keyword, argument = m.group(1).lower(), m.group(2)
    if keyword == "include":
        name = _QUOTED_NAME_RE.match(argument)
        if name is None:
            raise TemplateSyntaxError("include expects a quoted template name", token)
        return Include(name=name.group(2), source=token)
    return Tag(keyword=keyword, argument=argument, source=token)


def tokenize(text: str) -> list[Node]:
    nodes: list[Node] = []
    for token in _TOKEN_RE.split(text):
        if not token:
            continue
        if token.startswith("{#"):
            continue
        if token.startswith("{{"):
            nodes.append(_echo(token))
        elif token.startswith("{%"):
            nodes.append(_tag(token))
        else:
            nodes.append(Text(token))
    return nodes


__all__ = [
    "HOST_CODE_RE",
    "Echo",
    "Include",
    "Node",
    "Tag",
    "Text",
    "split_pipes",
    "strip_host_code",
    "tokenize",
]
