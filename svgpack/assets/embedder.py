"""Inline data-URI encoding for binary assets."""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from ..errors import ASSET_SIZE_LIMIT_EXCEEDED, TransformError, size_severity
from ..logging import get_logger
from ..models import KIND_ASSET, SEVERITY_WARNING, AssetEntry, SourceArtifact, ValidationIssue
from ..stores import BuildCache
from . import mime
from .svg import optimize_svg

ASSET_MAP_VARIABLE = "SVGPACK_ASSETS"


@dataclass
class EmbedResult:
    """Encoded assets in path order plus the running size total."""

    entries: List[AssetEntry] = field(default_factory=list)
    total_size: int = 0
    issues: List[ValidationIssue] = field(default_factory=list)
    cache_keys: List[str] = field(default_factory=list)

    def asset_map(self) -> Dict[str, str]:
        return {entry.name: entry.data_uri for entry in self.entries}


def make_data_uri(content: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


def render_asset_map(entries: Sequence[AssetEntry]) -> str:
    """Render the name to data-URI mapping as a JavaScript statement."""
    mapping = {entry.name: entry.data_uri for entry in entries}
    payload = json.dumps(mapping, sort_keys=True, separators=(",", ":"))
    return f"var {ASSET_MAP_VARIABLE} = {payload};"


class AssetEmbedder:
    """Encodes asset artifacts as data URIs and tracks cumulative size."""

    cache_version = "1"

    def __init__(self, cache: BuildCache | None = None) -> None:
        self.cache = cache
        self.logger = get_logger("assets")

    def embed(
        self,
        artifacts: Sequence[SourceArtifact],
        *,
        ceiling: int,
        strict: bool = False,
        optimize: bool = True,
    ) -> EmbedResult:
        result = EmbedResult()
        assets = sorted(
            (artifact for artifact in artifacts if artifact.kind == KIND_ASSET),
            key=lambda artifact: artifact.path,
        )
        for artifact in assets:
            entry, key, issues = self.encode(artifact, optimize=optimize)
            result.entries.append(entry)
            result.cache_keys.append(key)
            result.issues.extend(issues)
            result.total_size += entry.size
            if result.total_size > ceiling:
                # Never dropped: the asset stays embedded and the overflow is reported.
                result.issues.append(
                    ValidationIssue(
                        severity=size_severity(strict),
                        code=ASSET_SIZE_LIMIT_EXCEEDED,
                        message=(
                            f"Embedding {entry.name} ({entry.size} bytes) brings embedded assets to "
                            f"{result.total_size} bytes, over the {ceiling} byte ceiling"
                        ),
                        path=entry.name,
                    )
                )
        self.logger.debug(
            "Embedded %d assets (%d bytes)", len(result.entries), result.total_size
        )
        return result

    def encode(
        self, artifact: SourceArtifact, *, optimize: bool
    ) -> Tuple[AssetEntry, str, List[ValidationIssue]]:
        """Return the entry for one artifact, its cache key and any issues."""
        issues: List[ValidationIssue] = []
        mime_type, known = mime.infer(artifact.path)
        if not known:
            issues.append(
                ValidationIssue(
                    severity=SEVERITY_WARNING,
                    code="unknown-mime",
                    message=f"No MIME type registered for {artifact.path}; embedding as {mime_type}",
                    path=artifact.path,
                )
            )

        key = self.cache_key(artifact.hash, mime_type, optimize=optimize)
        cached = self.cache.get(key) if self.cache is not None else None
        if cached is not None and isinstance(cached.get("data_uri"), str):
            transform_note = cached.get("transform_error")
            if isinstance(transform_note, str):
                issues.append(TransformError(transform_note).to_issue(path=artifact.path))
            data_uri = str(cached["data_uri"])
        else:
            data_uri, transform_note = self._encode_payload(artifact, mime_type, optimize=optimize)
            if transform_note is not None:
                self.logger.warning("%s: %s", artifact.path, transform_note)
                issues.append(TransformError(transform_note).to_issue(path=artifact.path))
            if self.cache is not None:
                payload: Dict[str, object] = {"data_uri": data_uri}
                if transform_note is not None:
                    payload["transform_error"] = transform_note
                self.cache.store(key, payload)

        entry = AssetEntry(
            name=artifact.path,
            mime_type=mime_type,
            data_uri=data_uri,
            source_hash=artifact.hash,
        )
        return entry, key, issues

    def cache_key(self, content_hash: str, mime_type: str, *, optimize: bool) -> str:
        optimised = optimize and mime_type == "image/svg+xml"
        digest = hashlib.sha256(
            f"{self.cache_version}:{content_hash}:{mime_type}:{int(optimised)}".encode("utf-8")
        ).hexdigest()
        return f"asset:{digest}"

    @staticmethod
    def _encode_payload(
        artifact: SourceArtifact, mime_type: str, *, optimize: bool
    ) -> Tuple[str, str | None]:
        content = artifact.content
        if optimize and mime_type == "image/svg+xml":
            try:
                text = content.decode("utf-8")
                content = optimize_svg(text).encode("utf-8")
            except UnicodeDecodeError:
                return make_data_uri(content, mime_type), "SVG optimisation skipped: not UTF-8"
            except TransformError as exc:
                return make_data_uri(content, mime_type), f"SVG optimisation skipped: {exc}"
        return make_data_uri(content, mime_type), None


__all__ = [
    "ASSET_MAP_VARIABLE",
    "AssetEmbedder",
    "EmbedResult",
    "make_data_uri",
    "render_asset_map",
]
