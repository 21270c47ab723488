"""Tests for the lexical JavaScript and CSS minifiers."""

from __future__ import annotations

import pytest

from svgpack.bundler.minify import minify_css, minify_js
from svgpack.errors import TransformError


def test_minify_js_drops_comments_and_spaces_but_keeps_lines() -> None:
    source = "var a = 1;  // counter\n/* block */\nvar b = 'x  y';\n"

    assert minify_js(source) == "var a=1;\nvar b='x  y';"


def test_minify_js_leaves_literals_untouched() -> None:
    source = 'var re = /a  b\\/c/g;\nvar t = `hello  ${name}  !`;\nvar s = "// not a comment";\n'

    result = minify_js(source)

    assert "/a  b\\/c/g" in result
    assert "`hello  ${name}  !`" in result
    assert '"// not a comment"' in result


def test_minify_js_keeps_division_and_increment_spacing() -> None:
    assert minify_js("x = a / b / c;") == "x=a / b / c;"
    assert minify_js("y = a + +b;") == "y=a+ +b;"


def test_minify_js_preserves_license_comments() -> None:
    result = minify_js("/*! keep me */\nrun();\n")

    assert result.startswith("/*! keep me */")


@pytest.mark.parametrize(
    "source",
    ["var s = 'unterminated;\n", "/* never closed", "var t = `a ${`b`}`;"],
)
def test_minify_js_raises_on_unscannable_input(source: str) -> None:
    with pytest.raises(TransformError):
        minify_js(source)


def test_minify_css_collapses_whitespace() -> None:
    source = "/* theme */\na > b {\n  color: red;\n  content: \"a  b\";\n}\n"

    assert minify_css(source) == 'a>b{color:red;content:"a  b"}'


def test_minify_css_keeps_descendant_selectors() -> None:
    assert minify_css("g  rect { fill: blue }") == "g rect{fill:blue}"


@pytest.mark.parametrize("source", ["a { color: red;", "a { } }", "/* open"])
def test_minify_css_raises_on_unbalanced_input(source: str) -> None:
    with pytest.raises(TransformError):
        minify_css(source)
