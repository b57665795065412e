from pathlib import Path

import pytest

from stencil.runtime import bootstrap, load_config


def test_missing_config_file_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / "absent.yaml")
    assert cfg.template_dir == Path("templates")
    assert cfg.extension == ".tpl"
    assert cfg.allow_unsafe_calls is False
    assert cfg.resolved_cache_dir() == Path("templates") / ".." / "cache"


def test_yaml_config_resolves_relative_dirs(tmp_path):
    path = tmp_path / "stencil.yaml"
    path.write_text("template_dir: views\ncache_dir: /var/tmp/c\nextension: .html\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.template_dir == tmp_path / "views"
    assert cfg.cache_dir == Path("/var/tmp/c")
    assert cfg.extension == ".html"


def test_non_mapping_config_is_rejected(tmp_path):
    path = tmp_path / "stencil.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_overrides_win_and_none_is_ignored(tmp_path):
    cfg = load_config(tmp_path / "absent.yaml", {"template_dir": "/srv/views", "cache_dir": None})
    assert cfg.template_dir == Path("/srv/views")
    assert cfg.cache_dir is None


def test_bootstrap_reads_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STENCIL_CONFIG", str(tmp_path / "none.yaml"))
    monkeypatch.setenv("STENCIL_TEMPLATE_DIR", str(tmp_path / "tpl"))
    monkeypatch.delenv("STENCIL_CACHE_DIR", raising=False)
    cfg = bootstrap()
    assert cfg.template_dir == tmp_path / "tpl"
    assert cfg.cache_dir is None
