import pytest
from typer.testing import CliRunner

from stencil.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in ("STENCIL_CONFIG", "STENCIL_TEMPLATE_DIR", "STENCIL_CACHE_DIR"):
        monkeypatch.delenv(var, raising=False)


def test_render_command(views, cache_dir, write_template):
    write_template("hello", "Hello {{ name }} x{{ n + 1 }}")
    result = runner.invoke(
        app,
        ["render", "hello", "-t", str(views), "-c", str(cache_dir), "--var", "name=<World>", "--var", "n=1"],
    )
    assert result.exit_code == 0, result.output
    assert result.stdout == "Hello &lt;World&gt; x2"


def test_render_with_vars_file(views, cache_dir, write_template, tmp_path):
    write_template("list", "{% for u in users %}{{ u }};{% endfor %}")
    vars_file = tmp_path / "vars.yaml"
    vars_file.write_text("users: [a, b]\n", encoding="utf-8")
    result = runner.invoke(
        app, ["render", "list", "-t", str(views), "-c", str(cache_dir), "--vars-file", str(vars_file)]
    )
    assert result.exit_code == 0, result.output
    assert result.stdout == "a;b;"


def test_render_failure_exits_nonzero(views, cache_dir):
    result = runner.invoke(app, ["render", "missing", "-t", str(views), "-c", str(cache_dir)])
    assert result.exit_code == 1


def test_compile_command_lists_dependencies(views, cache_dir, write_template):
    write_template("part", "p")
    write_template("page", "{% include 'part' %}")
    result = runner.invoke(app, ["compile", "page", "-t", str(views), "-c", str(cache_dir)])
    assert result.exit_code == 0, result.output
    assert "part.tpl" in result.stdout
    assert "Dependencies" in result.stdout


def test_clean_command(views, cache_dir, write_template):
    write_template("page", "x")
    runner.invoke(app, ["render", "page", "-t", str(views), "-c", str(cache_dir)])
    result = runner.invoke(app, ["clean", "-t", str(views), "-c", str(cache_dir)])
    assert result.exit_code == 0, result.output
    assert "Removed 1" in result.stdout
