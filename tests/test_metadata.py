"""Tests for svgpack.metadata."""

from __future__ import annotations

import base64
import json
import xml.etree.ElementTree as ET

from svgpack.collector import hash_bytes
from svgpack.metadata import MANIFEST_NAMESPACE, MetadataGenerator, load_manifest
from svgpack.models import KIND_MANIFEST, SourceArtifact


def _manifest(path: str, text: str) -> SourceArtifact:
    content = text.encode("utf-8")
    return SourceArtifact(path=path, kind=KIND_MANIFEST, content=content, hash=hash_bytes(content))


def test_render_produces_namespaced_manifest_in_field_order() -> None:
    block = MetadataGenerator().render(
        {"theme_color": "#336699", "name": "Space Game", "description": "Shoot rocks"}
    )

    root = ET.fromstring(block.text)
    assert root.tag == f"{{{MANIFEST_NAMESPACE}}}manifest"
    names = [child.tag.split("}", 1)[1] for child in root]
    assert names == [
        "name",
        "short_name",
        "description",
        "start_url",
        "display",
        "theme_color",
        "link",
    ]
    assert root.find(f"{{{MANIFEST_NAMESPACE}}}short_name").text == "Space Game"
    assert block.manifest["display"] == "standalone"
    assert block.title == "Space Game"
    assert block.issues == []


def test_render_escapes_markup_in_fields() -> None:
    block = MetadataGenerator().render({"name": "Tom & Jerry <3", "description": '"quoted"'})

    assert "Tom &amp; Jerry &lt;3" in block.text
    root = ET.fromstring(block.text)
    assert root.find(f"{{{MANIFEST_NAMESPACE}}}name").text == "Tom & Jerry <3"
    assert block.title == "Tom &amp; Jerry &lt;3"


def test_manifest_link_carries_json_data_uri() -> None:
    block = MetadataGenerator().render({"name": "Demo"})

    root = ET.fromstring(block.text)
    link = root.find("{http://www.w3.org/1999/xhtml}link")
    assert link is not None
    assert link.get("rel") == "manifest"
    href = link.get("href")
    prefix = "data:application/manifest+json;base64,"
    assert href.startswith(prefix)
    payload = json.loads(base64.b64decode(href[len(prefix) :]))
    assert payload["name"] == "Demo"
    assert payload["start_url"] == "."


def test_unknown_display_mode_falls_back_with_warning() -> None:
    block = MetadataGenerator().render({"name": "Demo", "display": "kiosk"})

    assert block.manifest["display"] == "standalone"
    assert [issue.code for issue in block.issues] == ["manifest-display"]


def test_load_manifest_merges_overrides_and_reports_duplicates() -> None:
    artifacts = [
        _manifest("z/manifest.json", '{"name": "Other"}'),
        _manifest("manifest.json", '{"name": "Demo", "display": "fullscreen"}'),
    ]

    data, issues = load_manifest(artifacts, {"theme_color": "#000"})

    assert data == {"name": "Demo", "display": "fullscreen", "theme_color": "#000"}
    assert [issue.code for issue in issues] == ["manifest-duplicate"]


def test_load_manifest_reports_invalid_json() -> None:
    data, issues = load_manifest([_manifest("manifest.json", "{not json")], {"name": "Fallback"})

    assert data == {"name": "Fallback"}
    assert [issue.code for issue in issues] == ["manifest-parse-error"]
    assert issues[0].is_error


def test_missing_name_renders_without_name_element() -> None:
    block = MetadataGenerator().render({})

    root = ET.fromstring(block.text)
    assert root.find(f"{{{MANIFEST_NAMESPACE}}}name") is None
    assert block.title == ""
