"""Execute compiled template code and capture its output."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .codegen import EMIT, ESCAPE, FILTER, VAR
from .filters import FilterRegistry, escape_html


def execute(
    code: str,
    variables: Mapping[str, Any],
    filters: FilterRegistry,
    *,
    filename: str = "<template>",
) -> str:
    """Run ``code`` in a fresh namespace built from a copy of ``variables``.

    Output is collected in a local buffer and only joined on success, so a
    failure never leaks partial text. Exceptions propagate to the caller.
    """
    chunks: list[str] = []
    namespace: dict[str, Any] = dict(variables)

    def emit(value: Any) -> None:
        if value is None:
            return
        chunks.append(value if isinstance(value, str) else str(value))

    def lookup(name: str) -> Any:
        return namespace.get(name)

    namespace.update(
        {
            EMIT: emit,
            ESCAPE: escape_html,
            FILTER: filters.require,
            VAR: lookup,
        }
    )
    exec(compile(code, filename, "exec"), namespace)  # noqa: S102 - template code is trusted
    return "".join(chunks)


__all__ = ["execute"]
