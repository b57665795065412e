import pytest

from stencil.domain.errors import CacheDirectoryError, CompileError, RenderError, TemplateNotFoundError
from stencil.domain.models import EngineConfig
from stencil.infrastructure.templating.engine import TemplateEngine


def test_autoescape_and_raw(engine, write_template):
    write_template("esc", "{{ name }}")
    write_template("raw", "{{ name|raw }}")
    assert engine.render("esc", {"name": "<b>"}) == "&lt;b&gt;"
    assert engine.render("raw", {"name": "<b>"}) == "<b>"


def test_filter_chain_order(engine, write_template):
    write_template("len", "{{ x|upper|length }}")
    assert engine.render("len", {"x": "hi"}) == "2"


def test_escape_filter_is_not_double_escaped(engine, write_template):
    write_template("e", "{{ x|escape }}")
    assert engine.render("e", {"x": "a&b"}) == "a&amp;b"


def test_render_loop_with_bindings(engine, write_template):
    write_template(
        "home",
        "Hi {{ name }}:{% foreach user in users %} {{ user['name'] }}{% endforeach %}",
    )
    users = [{"name": "Alice"}, {"name": "Bob"}]
    assert engine.render("home", {"name": "Showket", "users": users}) == "Hi Showket: Alice Bob"


def test_missing_template(engine):
    with pytest.raises(TemplateNotFoundError):
        engine.render("absent")


def test_name_with_extension_is_accepted(engine, write_template):
    write_template("page", "ok")
    assert engine.render("page.tpl") == "ok"


def test_assign_and_per_call_override(engine, write_template):
    write_template("g", "{{ site }}/{{ page }}")
    engine.assign("site", "S")
    engine.assign("page", "default")
    assert engine.render("g") == "S/default"
    assert engine.render("g", {"page": "p"}) == "S/p"


def test_caller_bindings_are_not_mutated(engine, write_template):
    write_template("rebind", "{% for name in ['inner'] %}{{ name }}{% endfor %}")
    variables = {"name": "outer"}
    assert engine.render("rebind", variables) == "inner"
    assert variables == {"name": "outer"}
    assert "__stencil_emit" not in variables


def test_execution_failure_is_wrapped_and_discards_output(engine, write_template):
    write_template("boom", "before {{ 1 / 0 }} after")
    with pytest.raises(RenderError) as exc:
        engine.render("boom")
    assert isinstance(exc.value.cause, ZeroDivisionError)
    assert exc.value.template == "boom"


def test_invalid_expression_fails_at_render_time(engine, write_template):
    write_template("bad", "{% if x === 1 %}y{% endif %}")
    with pytest.raises(RenderError):
        engine.render("bad", {"x": 1})


def test_undecodable_source_is_a_compile_error(engine, views, cache_dir):
    (views / "bad.tpl").write_bytes(b"\xff\xfe{{ x }}")
    with pytest.raises(CompileError) as info:
        engine.render("bad")
    assert isinstance(info.value.cause, UnicodeDecodeError)
    assert info.value.template_path is not None
    with pytest.raises(CompileError):
        engine.compile_template("bad")
    assert list(cache_dir.glob("*.py")) == []


def test_add_filter(engine, write_template):
    engine.add_filter("reverse", lambda v: str(v)[::-1])
    write_template("r", "{{ word|reverse }}")
    assert engine.render("r", {"word": "abc"}) == "cba"


def test_render_string_is_not_cached(engine, cache_dir):
    assert engine.render_string("{{ a }}+{{ b }}", {"a": 1, "b": 2}) == "1+2"
    assert list(cache_dir.glob("*.py")) == []


def test_default_cache_dir_is_beside_templates(views):
    TemplateEngine(views)
    assert (views.parent / "cache").is_dir()


def test_cache_dir_creation_failure_is_fatal(views, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(CacheDirectoryError):
        TemplateEngine(views, blocker / "cache")


def test_from_config(views, cache_dir, write_template):
    write_template("c", "{{ x|str.upper }}")
    engine = TemplateEngine.from_config(
        EngineConfig(template_dir=views, cache_dir=cache_dir, allow_unsafe_calls=True)
    )
    assert engine.render("c", {"x": "q"}) == "Q"
    assert cache_dir.is_dir()
