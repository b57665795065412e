"""Command line for rendering, inspecting and cleaning compiled templates."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from stencil.domain.errors import StencilError
from stencil.domain.models import EngineConfig
from stencil.infrastructure.logging import get_console
from stencil.infrastructure.templating.engine import TemplateEngine
from stencil.runtime import bootstrap

app = typer.Typer(help="stencil template CLI")


@app.callback()
def init(
    ctx: typer.Context,
    config: Annotated[Path | None, typer.Option(help="YAML config file")] = None,
    log_level: Annotated[str | None, typer.Option(help="Logging level")] = None,
) -> None:
    """Bootstrap environment (dotenv + config + logging) before any command."""
    ctx.obj = bootstrap(config, log_level)


def _engine(ctx: typer.Context, templates: Path | None, cache: Path | None) -> TemplateEngine:
    cfg: EngineConfig = ctx.obj or EngineConfig()
    update = {k: v for k, v in {"template_dir": templates, "cache_dir": cache}.items() if v is not None}
    try:
        return TemplateEngine.from_config(cfg.model_copy(update=update))
    except StencilError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _parse_scalar(value: str) -> Any:
    if value.lstrip("-").isdigit():
        return int(value)
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    return value


def _parse_vars(values: list[str], vars_file: Path | None) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if vars_file is not None:
        # YAML is a superset of JSON, so both formats load here
        loaded = yaml.safe_load(vars_file.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise typer.BadParameter(f"Variables file must contain a mapping: {vars_file}")
        out.update(loaded)
    for item in values:
        if "=" not in item:
            raise typer.BadParameter(f"Expected key=value, got: {item}")
        k, v = item.split("=", 1)
        out[k.strip()] = _parse_scalar(v)
    return out


TemplatesOpt = Annotated[Path | None, typer.Option("--templates", "-t", help="Template directory")]
CacheOpt = Annotated[Path | None, typer.Option("--cache", "-c", help="Cache directory")]


@app.command("render")
def render_cmd(
    ctx: typer.Context,
    name: str,
    templates: TemplatesOpt = None,
    cache: CacheOpt = None,
    var: Annotated[list[str] | None, typer.Option("--var", "-v", help="key=value binding")] = None,
    vars_file: Annotated[Path | None, typer.Option(help="YAML/JSON file with bindings")] = None,
) -> None:
    engine = _engine(ctx, templates, cache)
    variables = _parse_vars(var or [], vars_file)
    try:
        output = engine.render(name, variables)
    except StencilError as exc:
        get_console(stderr=True).print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    typer.echo(output, nl=False)


@app.command("compile")
def compile_cmd(
    ctx: typer.Context,
    name: str,
    templates: TemplatesOpt = None,
    cache: CacheOpt = None,
) -> None:
    engine = _engine(ctx, templates, cache)
    try:
        result = engine.compile_template(name)
    except StencilError as exc:
        get_console(stderr=True).print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    cons = get_console()
    cons.print(Panel(Syntax(result.code, "python"), title=name, border_style="cyan"))
    table = Table(title="Dependencies")
    table.add_column("#")
    table.add_column("Template", no_wrap=True)
    table.add_column("Path", overflow="fold")
    for i, dep in enumerate(result.deps, start=1):
        table.add_row(str(i), Path(dep).name, dep)
    cons.print(table)


@app.command("clean")
def clean_cmd(
    ctx: typer.Context,
    templates: TemplatesOpt = None,
    cache: CacheOpt = None,
) -> None:
    removed = _engine(ctx, templates, cache).clear_cache()
    get_console().print(f"[green]Removed {removed} compiled template(s)[/green]")


if __name__ == "__main__":  # pragma: no cover
    app()
