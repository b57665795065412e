"""Shared pytest fixtures: a template directory, a cache directory and an engine.

Template files are written with an mtime in the past so that cache validity
(``mtime <= compiled_at``) never depends on file-system timestamp granularity.
"""

import os
import time
from pathlib import Path

import pytest

from stencil.infrastructure.templating.engine import TemplateEngine


@pytest.fixture
def views(tmp_path: Path) -> Path:
    d = tmp_path / "views"
    d.mkdir()
    return d


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def write_template(views: Path):
    def _write(name: str, text: str, *, age: float = 100.0) -> Path:
        path = views / f"{name}.tpl"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        stamp = time.time() - age
        os.utime(path, (stamp, stamp))
        return path

    return _write


@pytest.fixture
def engine(views: Path, cache_dir: Path) -> TemplateEngine:
    return TemplateEngine(views, cache_dir)


@pytest.fixture
def compile_calls(engine: TemplateEngine, monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Record every call the engine makes to its compiler."""
    calls: list[str] = []
    original = engine.compiler.compile

    def counting(source, source_path=None):
        calls.append(str(source_path))
        return original(source, source_path)

    monkeypatch.setattr(engine.compiler, "compile", counting)
    return calls
