"""Tests for the embedded SVG optimiser."""

from __future__ import annotations

import pytest

from svgpack.assets.svg import optimize_svg, root_attributes
from svgpack.errors import TransformError

ICON = """<?xml version="1.0" encoding="UTF-8"?>
<!-- Generator: Example Editor -->
<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24" width="24" height="24">
  <metadata>
    <rdf>editor junk</rdf>
  </metadata>
  <path d="M0 0h24v24H0z"/>
</svg>
"""


def test_optimize_removes_prolog_comments_and_metadata() -> None:
    result = optimize_svg(ICON)

    assert result.startswith("<svg")
    assert "Generator" not in result
    assert "metadata" not in result
    assert '<path d="M0 0h24v24H0z"/>' in result
    assert len(result) < len(ICON)


def test_optimize_keeps_load_bearing_root_attributes() -> None:
    before = root_attributes(ICON)
    after = root_attributes(optimize_svg(ICON))

    for name in ("viewBox", "width", "height"):
        assert after[name] == before[name]


def test_optimize_leaves_text_whitespace_alone() -> None:
    source = '<svg xmlns="http://www.w3.org/2000/svg">\n  <text>a</text>\n  <text>b</text>\n</svg>'

    assert "\n  <text>b</text>" in optimize_svg(source)


@pytest.mark.parametrize(
    "source",
    ["<svg xmlns='http://www.w3.org/2000/svg'><g></svg>", "<html><body/></html>"],
)
def test_optimize_rejects_non_svg_input(source: str) -> None:
    with pytest.raises(TransformError):
        optimize_svg(source)
