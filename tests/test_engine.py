"""Tests for the Jinja2 rendering engine and its dialects."""

from __future__ import annotations

import pytest

from treeplate.core.errors import RenderError
from treeplate.core.models import Dialect
from treeplate.rendering.engine import TemplateRenderer, decode_text

CONTEXT = {"values": {"name": "Bob", "author": "Alice", "flag": True, "count": 3}}

PNG_HEADER = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\xff\xfe{{ values.name }}"


@pytest.fixture(params=list(Dialect))
def renderer(request: pytest.FixtureRequest) -> TemplateRenderer:
    return TemplateRenderer(request.param)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "plain text",
        "trailing newline\n",
        "windows\r\nline endings\r\n",
        "  indented\n\n\n",
        "braces { } and } alone",
        "shell ${HOME} and $((1 + 2))",
    ],
)
def test_text_without_markers_is_unchanged(renderer: TemplateRenderer, text: str) -> None:
    assert renderer.render(text, CONTEXT, "file.txt") == text


def test_standard_substitution() -> None:
    renderer = TemplateRenderer()
    assert renderer.render("# {{ values.name }}\n", CONTEXT, "README.md") == "# Bob\n"


def test_statements_and_filters() -> None:
    renderer = TemplateRenderer()
    text = (
        "{% if values.flag %}{{ values.name | upper }}{% endif %}"
        "{% for i in range(values.count) %}.{% endfor %}"
    )
    assert renderer.render(text, CONTEXT, "f") == "BOB..."


def test_crlf_is_preserved_when_rendering() -> None:
    renderer = TemplateRenderer()
    text = "name: {{ values.name }}\r\nauthor: {{ values.author }}\r\n"
    assert renderer.render(text, CONTEXT, "f") == "name: Bob\r\nauthor: Alice\r\n"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("a {{ values.name }}\r\nb\nc\n", "a Bob\nb\nc\n"),
        ("a {{ values.name }}\r\nb\r\nc\n", "a Bob\r\nb\r\nc\r\n"),
    ],
)
def test_mixed_line_endings_follow_the_majority(text: str, expected: str) -> None:
    assert TemplateRenderer().render(text, CONTEXT, "f") == expected


# ---------------------------------------------------------------------------
# Dialects
# ---------------------------------------------------------------------------


def test_backstage_substitution() -> None:
    renderer = TemplateRenderer(Dialect.BACKSTAGE)
    assert renderer.render("by ${{ values.author }}", CONTEXT, "f") == "by Alice"


def test_backstage_ignores_standard_variables() -> None:
    renderer = TemplateRenderer(Dialect.BACKSTAGE)
    text = "Keep {{ this }} as-is, but render ${{ values.name }}"
    assert renderer.render(text, CONTEXT, "f") == "Keep {{ this }} as-is, but render Bob"


def test_backstage_keeps_statement_markers() -> None:
    renderer = TemplateRenderer(Dialect.BACKSTAGE)
    text = "{% if values.flag %}on{% else %}off{% endif %}"
    assert renderer.render(text, CONTEXT, "f") == "on"


def test_standard_leaves_backstage_expressions_literal() -> None:
    renderer = TemplateRenderer(Dialect.STANDARD)
    assert renderer.render("${{ values.author }}", CONTEXT, "f") == "${{ values.author }}"
    assert (
        renderer.render("{{ values.name }} runs ${{ secrets.TOKEN }}", CONTEXT, "f")
        == "Bob runs ${{ secrets.TOKEN }}"
    )


@pytest.mark.parametrize(
    "text, expected",
    [
        (
            "{{ values.name }}: {% raw %}${{ secrets.TOKEN }}{% endraw %}\n",
            "Bob: ${{ secrets.TOKEN }}\n",
        ),
        ("{{ values.name ~ '${{' }}\n", "Bob${{\n"),
        ("{# ${{ values.nope }} #}{{ values.name }}", "Bob"),
        ("{% if values.flag %}${{ github.sha }}{% endif %}", "${{ github.sha }}"),
    ],
)
def test_standard_keeps_jinja_semantics_around_backstage_markers(
    text: str, expected: str
) -> None:
    assert TemplateRenderer().render(text, CONTEXT, "f") == expected


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def test_undefined_variable_fails_with_entry_path() -> None:
    renderer = TemplateRenderer()

    with pytest.raises(RenderError) as excinfo:
        renderer.render("Hello {{ missing_param }}", CONTEXT, "docs/file.txt")

    assert excinfo.value.entry_path == "docs/file.txt"
    assert "missing_param" in str(excinfo.value)
    assert "docs/file.txt" in str(excinfo.value)


def test_undefined_nested_value_fails() -> None:
    with pytest.raises(RenderError):
        TemplateRenderer().render("{{ values.nope }}", CONTEXT, "f")


def test_syntax_error_fails() -> None:
    with pytest.raises(RenderError) as excinfo:
        TemplateRenderer().render("{% if values.flag %}unclosed", CONTEXT, "f")
    assert excinfo.value.cause is not None


def test_type_mismatch_fails() -> None:
    with pytest.raises(RenderError) as excinfo:
        TemplateRenderer().render("{{ values.name + 1 }}", CONTEXT, "f")
    assert isinstance(excinfo.value.cause, TypeError)


def test_sandbox_blocks_attribute_escape() -> None:
    with pytest.raises(RenderError):
        TemplateRenderer().render("{{ ''.__class__.__mro__ }}", CONTEXT, "f")


# ---------------------------------------------------------------------------
# Binary content
# ---------------------------------------------------------------------------


def test_binary_content_passes_through(renderer: TemplateRenderer) -> None:
    content, binary = renderer.render_bytes(PNG_HEADER, CONTEXT, "logo.png")
    assert binary is True
    assert content == PNG_HEADER


def test_text_content_is_rendered_as_utf8() -> None:
    content, binary = TemplateRenderer().render_bytes(
        "Grüße {{ values.name }}".encode(), CONTEXT, "f"
    )
    assert binary is False
    assert content == "Grüße Bob".encode()


def test_decode_text() -> None:
    assert decode_text(b"abc") == "abc"
    assert decode_text(b"\xff\xfe") is None
