"""Tests for the code and style bundler."""

from __future__ import annotations

from svgpack.bundler import BundleOutput, CodeBundler
from svgpack.bundler.shim import CAPABILITY_SHIM, declared_capabilities
from svgpack.collector import hash_bytes
from svgpack.models import KIND_CODE, KIND_STYLE, SourceArtifact
from svgpack.stores import BuildCache


def _artifact(path: str, text: str, kind: str = KIND_CODE) -> SourceArtifact:
    content = text.encode("utf-8")
    return SourceArtifact(path=path, kind=kind, content=content, hash=hash_bytes(content))


def test_bundle_orders_declared_entries_first_then_lexically() -> None:
    artifacts = [
        _artifact("zeta.js", "z();"),
        _artifact("alpha.js", "a();"),
        _artifact("vendor/lib.js", "lib();"),
        _artifact("theme.css", "g{}", KIND_STYLE),
    ]

    output = CodeBundler().bundle(artifacts, KIND_CODE, order=["vendor/lib.js"])

    assert output.paths == ("vendor/lib.js", "alpha.js", "zeta.js")
    body = output.text
    assert body.startswith(CAPABILITY_SHIM)
    assert body.index("lib();") < body.index("a();") < body.index("z();")
    assert ";/* alpha.js */" in body
    assert output.issues == ()


def test_missing_declared_entry_is_reported_for_its_kind_only() -> None:
    artifacts = [_artifact("main.js", "main();"), _artifact("site.css", "g{}", KIND_STYLE)]
    bundler = CodeBundler()

    js = bundler.bundle(artifacts, KIND_CODE, order=["missing.js", "missing.css"])
    css = bundler.bundle(artifacts, KIND_STYLE, order=["missing.js", "missing.css"])

    assert [issue.code for issue in js.issues] == ["bundle-order-missing"]
    assert js.issues[0].path == "missing.js"
    assert [issue.path for issue in css.issues] == ["missing.css"]


def test_bundle_is_deterministic_and_fingerprint_tracks_content() -> None:
    bundler = CodeBundler()
    first = bundler.bundle([_artifact("b.js", "b();"), _artifact("a.js", "a();")], KIND_CODE)
    second = bundler.bundle([_artifact("a.js", "a();"), _artifact("b.js", "b();")], KIND_CODE)
    changed = bundler.bundle([_artifact("a.js", "a(1);"), _artifact("b.js", "b();")], KIND_CODE)

    assert first.text == second.text
    assert first.fingerprint == second.fingerprint
    assert changed.fingerprint != first.fingerprint


def test_empty_code_bundle_still_declares_capabilities() -> None:
    output = CodeBundler().bundle([], KIND_CODE)

    assert output.text == CAPABILITY_SHIM
    assert declared_capabilities(output.text) == ["offline", "storage"]


def test_style_bundle_has_no_shim_and_strips_bom() -> None:
    output = CodeBundler().bundle([_artifact("a.css", "\ufeffg { fill: red; }")], KIND_STYLE)

    assert "SVGPACK_CAPABILITIES" not in output.text
    assert "\ufeff" not in output.text
    assert output.text.startswith("/* a.css */")


def test_invalid_utf8_is_replaced_with_warning() -> None:
    artifact = SourceArtifact(
        path="bad.js", kind=KIND_CODE, content=b"x = '\xff';", hash=hash_bytes(b"x = '\xff';")
    )

    output = CodeBundler().bundle([artifact], KIND_CODE)

    assert [issue.code for issue in output.issues] == ["decode-error"]
    assert "\ufffd" in output.text


def test_minify_failure_falls_back_to_original_text() -> None:
    output = CodeBundler().bundle(
        [_artifact("broken.js", "var s = 'open;\n")], KIND_CODE, minify=True
    )

    assert [issue.code for issue in output.issues] == ["transform-error"]
    assert not output.issues[0].is_error
    assert "var s = 'open;" in output.text


def test_minified_bundle_is_smaller() -> None:
    source = "function  add ( a ,  b ) {\n    // sum\n    return a + b ;\n}\n"
    plain = CodeBundler().bundle([_artifact("m.js", source)], KIND_CODE)
    minified = CodeBundler().bundle([_artifact("m.js", source)], KIND_CODE, minify=True)

    assert len(minified.text) < len(plain.text)
    assert "return a+b;" in minified.text


def test_cached_bundle_is_reused_with_fresh_order_issues() -> None:
    cache = BuildCache()
    bundler = CodeBundler(cache)
    artifacts = [_artifact("main.js", "main();")]

    first = bundler.bundle(artifacts, KIND_CODE)
    second = bundler.bundle(artifacts, KIND_CODE, order=["gone.js"])

    assert first.fingerprint in cache
    assert cache.hits == 1
    assert isinstance(second, BundleOutput)
    assert second.text == first.text
    assert [issue.code for issue in second.issues] == ["bundle-order-missing"]
