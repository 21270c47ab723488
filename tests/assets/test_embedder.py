"""Tests for the asset embedder."""

from __future__ import annotations

import base64
import json

from svgpack.assets import AssetEmbedder, make_data_uri, render_asset_map
from svgpack.assets.embedder import ASSET_MAP_VARIABLE
from svgpack.collector import hash_bytes
from svgpack.errors import ASSET_SIZE_LIMIT_EXCEEDED
from svgpack.models import KIND_ASSET, KIND_CODE, SEVERITY_ERROR, SEVERITY_WARNING, SourceArtifact
from svgpack.stores import BuildCache


def _asset(path: str, content: bytes) -> SourceArtifact:
    return SourceArtifact(path=path, kind=KIND_ASSET, content=content, hash=hash_bytes(content))


def test_embed_encodes_assets_in_path_order() -> None:
    artifacts = [
        _asset("sounds/beep.wav", b"RIFF"),
        _asset("img/logo.png", b"\x89PNG"),
        SourceArtifact(path="main.js", kind=KIND_CODE, content=b"1;", hash=hash_bytes(b"1;")),
    ]

    result = AssetEmbedder().embed(artifacts, ceiling=10_000)

    assert [entry.name for entry in result.entries] == ["img/logo.png", "sounds/beep.wav"]
    logo = result.entries[0]
    assert logo.mime_type == "image/png"
    assert logo.data_uri == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode("ascii")
    assert result.total_size == sum(entry.size for entry in result.entries)
    assert result.issues == []


def test_unknown_extension_embeds_as_octet_stream_with_warning() -> None:
    result = AssetEmbedder().embed([_asset("level.dat", b"\x00\x01")], ceiling=10_000)

    assert result.entries[0].mime_type == "application/octet-stream"
    assert [issue.code for issue in result.issues] == ["unknown-mime"]
    assert result.issues[0].severity == SEVERITY_WARNING


def test_asset_over_ceiling_is_kept_and_reported() -> None:
    small = _asset("a.png", b"a" * 10)
    large = _asset("b.png", b"b" * 300)
    ceiling = len(make_data_uri(small.content, "image/png")) + 10

    result = AssetEmbedder().embed([small, large], ceiling=ceiling)

    assert [entry.name for entry in result.entries] == ["a.png", "b.png"]
    assert [issue.code for issue in result.issues] == [ASSET_SIZE_LIMIT_EXCEEDED]
    assert result.issues[0].severity == SEVERITY_WARNING
    assert result.issues[0].path == "b.png"

    strict = AssetEmbedder().embed([small, large], ceiling=ceiling, strict=True)
    assert strict.issues[0].severity == SEVERITY_ERROR


def test_svg_assets_are_optimised_and_failures_degrade() -> None:
    good = _asset("icon.svg", b'<?xml version="1.0"?>\n<svg xmlns="http://www.w3.org/2000/svg"/>')
    broken = _asset("broken.svg", b"<svg><g></svg>")

    result = AssetEmbedder().embed([good, broken], ceiling=10_000)

    icon = next(entry for entry in result.entries if entry.name == "icon.svg")
    decoded = base64.b64decode(icon.data_uri.split(",", 1)[1])
    assert not decoded.startswith(b"<?xml")
    broken_entry = next(entry for entry in result.entries if entry.name == "broken.svg")
    assert broken_entry.data_uri == make_data_uri(b"<svg><g></svg>", "image/svg+xml")
    assert [(issue.code, issue.path) for issue in result.issues] == [
        ("transform-error", "broken.svg")
    ]

    untouched = AssetEmbedder().embed([good], ceiling=10_000, optimize=False)
    assert untouched.entries[0].data_uri == make_data_uri(good.content, "image/svg+xml")


def test_cached_encoding_is_reused_with_its_issue() -> None:
    cache = BuildCache()
    broken = _asset("broken.svg", b"<svg><g></svg>")

    first = AssetEmbedder(cache).embed([broken], ceiling=10_000)
    second = AssetEmbedder(cache).embed([broken], ceiling=10_000)

    assert cache.hits == 1
    assert second.entries == first.entries
    assert second.issues == first.issues
    assert second.cache_keys == first.cache_keys


def test_render_asset_map_is_sorted_json() -> None:
    result = AssetEmbedder().embed(
        [_asset("z.png", b"z"), _asset("a.png", b"a")], ceiling=10_000
    )

    rendered = render_asset_map(result.entries)

    prefix = f"var {ASSET_MAP_VARIABLE} = "
    assert rendered.startswith(prefix) and rendered.endswith(";")
    mapping = json.loads(rendered[len(prefix) : -1])
    assert list(mapping) == ["a.png", "z.png"]
    assert mapping == result.asset_map()
    assert render_asset_map([]) == f"var {ASSET_MAP_VARIABLE} = {{}};"
