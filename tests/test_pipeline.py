"""End-to-end tests for svgpack.pipeline."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from svgpack.errors import (
    ASSET_SIZE_LIMIT_EXCEEDED,
    READ_ERROR,
    SIZE_LIMIT_EXCEEDED,
    CompositionError,
)
from svgpack.pipeline import Pipeline
from svgpack.stores import BuildCache
from svgpack.registry import ComponentRegistry
from tests._fixtures.project_builder import ProjectBuilder

SVG_ROOT = "{http://www.w3.org/2000/svg}svg"


def test_minimal_app_builds_without_issues(project: ProjectBuilder) -> None:
    project.basic_app(name="Demo")
    config = project.config()

    result = Pipeline(config).run()

    assert result.success
    assert list(result.issues) == []
    assert ET.fromstring(result.document.encode("utf-8")).tag == SVG_ROOT
    assert "<title>Demo</title>" in result.document
    assert "function tick()" in result.document
    assert "SVGPACK_CAPABILITIES" in result.document
    assert config.output_path.read_text(encoding="utf-8") == result.document
    assert result.size == len(result.document.encode("utf-8"))


def test_build_is_deterministic(project: ProjectBuilder) -> None:
    project.basic_app()
    project.write_bytes("img/logo.png", b"\x89PNG\r\n\x1a\n")

    first = Pipeline(project.config()).build()
    second = Pipeline(project.config()).build()

    assert first.document == second.document
    assert "data:image/png;base64," in first.document


def test_skeleton_without_metadata_placeholder_aborts(project: ProjectBuilder) -> None:
    project.basic_app()
    skeleton = project.root / "skeleton.svg"
    skeleton.write_text(
        '<svg xmlns="http://www.w3.org/2000/svg"><style>{{CSS}}</style>'
        "<script>{{ASSETS}}</script><script>{{JS}}</script></svg>",
        encoding="utf-8",
    )
    config = project.config(template_path=skeleton)

    with pytest.raises(CompositionError) as excinfo:
        Pipeline(config).run()

    assert excinfo.value.missing == ["METADATA"]
    assert not config.output_path.exists()


def test_missing_skeleton_file_is_a_composition_error(project: ProjectBuilder) -> None:
    project.basic_app()
    config = project.config(template_path=project.root / "nope.svg")

    with pytest.raises(CompositionError):
        Pipeline(config).build()


def test_placeholder_text_in_sources_is_not_substituted(project: ProjectBuilder) -> None:
    project.basic_app()
    project.write({"zz.js": "var marker = '{{CSS}}';\n"})

    result = Pipeline(project.config()).build()

    assert result.success
    assert "var marker = '{{CSS}}';" in result.document
    assert result.document.count("svg { background: #fff; }") == 1


def test_size_ceiling_boundary(project: ProjectBuilder) -> None:
    project.basic_app()
    size = Pipeline(project.config()).build().size

    at_limit = Pipeline(project.config(size_ceiling=size)).build()
    assert at_limit.success
    assert SIZE_LIMIT_EXCEEDED not in [issue.code for issue in at_limit.issues]

    over = Pipeline(project.config(size_ceiling=size - 1)).build()
    assert over.success
    assert [issue.code for issue in over.warnings] == [SIZE_LIMIT_EXCEEDED]

    strict_config = project.config(size_ceiling=size - 1, strict=True)
    strict = Pipeline(strict_config).run()
    assert not strict.success
    assert [issue.code for issue in strict.errors] == [SIZE_LIMIT_EXCEEDED]
    assert not strict_config.output_path.exists()


def test_every_problem_is_reported_in_one_pass(project: ProjectBuilder) -> None:
    project.write({"app.js": "run();\n", "style.css": "g {}\n"})
    project.manifest(description="no name here")
    project.write_bytes("big.png", b"\x00" * 4096)

    result = Pipeline(project.config(size_ceiling=1024)).build()

    codes = [issue.code for issue in result.issues]
    assert ASSET_SIZE_LIMIT_EXCEEDED in codes
    assert SIZE_LIMIT_EXCEEDED in codes
    assert "missing-metadata-field" in codes
    assert not result.success


def test_failed_build_leaves_previous_output(project: ProjectBuilder) -> None:
    project.basic_app()
    config = project.config()
    pipeline = Pipeline(config)
    first = pipeline.run()
    assert first.success

    project.manifest(description="name removed")
    second = pipeline.run()

    assert not second.success
    assert config.output_path.read_text(encoding="utf-8") == first.document


def test_cache_is_persisted_and_reused(project: ProjectBuilder) -> None:
    project.basic_app()
    project.write_bytes("img/logo.png", b"\x89PNG\r\n\x1a\n")
    cache_path = project.root / ".svgpack" / "cache.json"
    config = project.config(cache_path=cache_path)

    first = Pipeline(config).run()
    assert cache_path.exists()

    registry = ComponentRegistry.for_config(config, cache=BuildCache(cache_path))
    second = Pipeline(config, registry).build()

    assert second.document == first.document
    # JS bundle, CSS bundle and the one asset.
    assert registry.cache.hits == 3
    assert registry.cache.misses == 0


def test_three_placeholder_skeleton_places_each_block(project: ProjectBuilder) -> None:
    project.write({"app.js": "console.log(1)", "main.css": "body{color:red}"})
    project.manifest(name="T")
    skeleton = project.root / "skeleton.svg"
    skeleton.write_text(
        '<svg xmlns="http://www.w3.org/2000/svg">'
        "<metadata>{{METADATA}}</metadata>"
        "<style>{{CSS}}</style>"
        "<script>{{JS}}</script>"
        "</svg>",
        encoding="utf-8",
    )

    result = Pipeline(project.config(template_path=skeleton)).run()

    assert result.success
    assert list(result.issues) == []
    root = ET.fromstring(result.document.encode("utf-8"))
    namespace = "{http://www.w3.org/2000/svg}"
    assert "console.log(1)" in root.find(f"{namespace}script").text
    assert "color:red" in root.find(f"{namespace}style").text
    metadata = root.find(f"{namespace}metadata")
    assert any(element.text == "T" for element in metadata.iter())


def test_undecodable_gitignore_still_produces_a_result(project: ProjectBuilder) -> None:
    project.basic_app()
    project.write_bytes(".gitignore", b"\xff\xfe bad\n")

    result = Pipeline(project.config()).build()

    assert not result.success
    assert [issue.code for issue in result.issues] == [READ_ERROR]
    assert "function tick()" in result.document
