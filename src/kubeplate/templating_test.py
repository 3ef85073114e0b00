import tempfile
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from kubeplate.errors import RenderError, TemplateDidNotConverge, TemplateNotFound
from kubeplate.templating import TemplateRenderer, has_template_markers


def test_render_without_template_syntax_is_byte_identical(tmp_path: Path) -> None:
    source = b"apiVersion: v1\r\nkind: ConfigMap\r\nmetadata:\r\n  name: plain\r\n\r\n"
    template = tmp_path / "plain.yaml"
    template.write_bytes(source)

    assert TemplateRenderer().render(template, {"namespace": "default"}) == source


def test_render_substitutes_values_and_keeps_trailing_newline(tmp_path: Path) -> None:
    template = tmp_path / "svc.yaml"
    template.write_text('{name: "svc-{{ env }}", namespace: "{{ namespace }}"}\n')

    result = TemplateRenderer().render(template, {"env": "prod", "namespace": "team-a"})

    assert result == b'{name: "svc-prod", namespace: "team-a"}\n'


def test_render_expands_values_that_contain_templates_in_another_pass(tmp_path: Path) -> None:
    template = tmp_path / "tmpl.yaml"
    template.write_text("name: {{ fragment }}\n")
    renderer = TemplateRenderer()

    with patch.object(renderer, "_render_file", wraps=renderer._render_file) as render_file:
        result = renderer.render(template, {"fragment": "app-{{ suffix }}", "suffix": "one"})

    assert result == b"name: app-one\n"
    assert render_file.call_count == 2


def test_render_removes_temporary_artifacts(tmp_path: Path) -> None:
    template = tmp_path / "tmpl.yaml"
    template.write_text("name: {{ fragment }}\n")
    created: list[Path] = []

    def tracking_tempdir(*args: Any, **kwargs: Any) -> tempfile.TemporaryDirectory:
        tmp = tempfile.TemporaryDirectory(*args, **kwargs)
        created.append(Path(tmp.name))
        return tmp

    with patch("kubeplate.templating.TemporaryDirectory", side_effect=tracking_tempdir):
        assert TemplateRenderer().render(template, {"fragment": "{{ 'x' }}"}) == b"name: x\n"
        with pytest.raises(RenderError):
            TemplateRenderer().render(template, {"fragment": "{% endfor %}"})

    assert len(created) == 2
    assert not any(path.exists() for path in created)


def test_render_fails_if_output_does_not_converge(tmp_path: Path) -> None:
    template = tmp_path / "loop.yaml"
    template.write_text("value: {{ loop }}\n")

    with pytest.raises(TemplateDidNotConverge):
        TemplateRenderer(max_passes=5).render(template, {"loop": "{{ loop }}"})


def test_render_missing_template(tmp_path: Path) -> None:
    with pytest.raises(TemplateNotFound):
        TemplateRenderer().render(tmp_path / "missing.yaml", {})


def test_render_syntax_error_reports_line(tmp_path: Path) -> None:
    template = tmp_path / "broken.yaml"
    template.write_text("a: 1\nb: {% endfor %}\n")

    with pytest.raises(RenderError) as excinfo:
        TemplateRenderer().render(template, {"value": 1})

    assert excinfo.value.lineno == 2
    assert str(template) in str(excinfo.value)


def test_render_undefined_value_is_an_error_in_strict_mode(tmp_path: Path) -> None:
    template = tmp_path / "undefined.yaml"
    template.write_text("a: {{ missing }}\n")

    with pytest.raises(RenderError, match="missing"):
        TemplateRenderer().render(template, {})
    assert TemplateRenderer(strict=False).render(template, {}) == b"a: \n"


def test_render_include_relative_to_template(tmp_path: Path) -> None:
    (tmp_path / "labels.yaml").write_text("app: {{ app }}")
    template = tmp_path / "main.yaml"
    template.write_text("labels:\n  {% include 'labels.yaml' %}\n")

    assert TemplateRenderer().render(template, {"app": "web"}) == b"labels:\n  app: web\n"


def test_functions() -> None:
    renderer = TemplateRenderer()
    values = {"image": {"tag": "1.2"}, "name": "web", "items": {"a": 1}}

    assert renderer.render_string("{{ name | quote }}", values) == '"web"'
    assert renderer.render_string("{{ name | upper }}", values) == "WEB"
    assert renderer.render_string("{{ missing | default('fallback') }}", values) == "fallback"
    assert renderer.render_string("{{ lookup('image.tag') }}", values) == "1.2"
    assert renderer.render_string("{{ lookup('image.digest', 'latest') }}", values) == "latest"
    assert renderer.render_string("{{ values.image.tag }}", values) == "1.2"
    assert renderer.render_string("{{ 'hello' | b64enc }}", values) == "aGVsbG8="
    assert renderer.render_string("{{ 'aGVsbG8=' | b64dec }}", values) == "hello"
    assert renderer.render_string("{{ items | toYaml }}", values) == "a: 1"
    assert renderer.render_string("{{ items | toJson }}", values) == '{"a": 1}'
    assert renderer.render_string("{{ 'v1.2' | trimPrefix('v') }}", values) == "1.2"
    assert renderer.render_string("{{ 'abcdef' | trunc(3) }}", values) == "abc"
    assert renderer.render_string("{{ true | ternary('yes', 'no') }}", values) == "yes"
    assert renderer.render_string("{{ items | hasKey('a') }}", values) == "True"
    assert renderer.render_string("x:{{ items | toYaml | nindent(2) }}", values) == "x:\n  a: 1"
    assert len(renderer.render_string("{{ randAlphaNum(12) }}", values)) == 12


def test_required_function() -> None:
    renderer = TemplateRenderer()

    assert renderer.render_string("{{ name | required('name is required') }}", {"name": "web"}) == "web"
    with pytest.raises(RenderError, match="name is required"):
        renderer.render_string("{{ name | required('name is required') }}", {"name": ""})
    with pytest.raises(RenderError, match="name is required"):
        renderer.render_string("{{ name | required('name is required') }}", {})


def test_has_template_markers() -> None:
    assert has_template_markers(b"a: {{ b }}")
    assert has_template_markers(b"{% if a %}{% endif %}")
    assert has_template_markers(b"{# comment #}")
    assert not has_template_markers(b"a: {b: c}")
