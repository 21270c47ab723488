"""Deterministic concatenation of logic and style artifacts."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..collector import classify
from ..errors import TransformError
from ..logging import get_logger
from ..models import (
    KIND_CODE,
    KIND_STYLE,
    SEVERITY_WARNING,
    SourceArtifact,
    ValidationIssue,
)
from ..stores import BuildCache
from .minify import minify_css, minify_js
from .shim import CAPABILITY_SHIM

_MINIFIERS: Dict[str, Callable[[str], str]] = {
    KIND_CODE: minify_js,
    KIND_STYLE: minify_css,
}


@dataclass(frozen=True)
class BundleOutput:
    """Concatenated bundle text for one artifact kind."""

    kind: str
    text: str
    fingerprint: str
    paths: Tuple[str, ...] = ()
    issues: Tuple[ValidationIssue, ...] = ()


class CodeBundler:
    """Concatenates code or style artifacts into a single block of text.

    The output depends only on the ordered ``(path, hash)`` pairs of the inputs,
    the artifact kind and the minify flag, which is also the cache key.
    """

    cache_version = "1"

    def __init__(self, cache: BuildCache | None = None) -> None:
        self.cache = cache
        self.logger = get_logger("bundler")

    def order(
        self,
        artifacts: Sequence[SourceArtifact],
        declared: Sequence[str] = (),
        *,
        kind: str | None = None,
    ) -> Tuple[List[SourceArtifact], List[ValidationIssue]]:
        """Return artifacts with declared paths first, the rest in lexical order."""
        by_path = {artifact.path: artifact for artifact in artifacts}
        ordered: List[SourceArtifact] = []
        issues: List[ValidationIssue] = []
        seen = set()
        for path in declared:
            normalised = path.replace("\\", "/")
            if normalised.startswith("./"):
                normalised = normalised[2:]
            if normalised in seen:
                continue
            artifact = by_path.get(normalised)
            if artifact is None:
                if kind is None or classify(normalised) == kind:
                    issues.append(
                        ValidationIssue(
                            severity=SEVERITY_WARNING,
                            code="bundle-order-missing",
                            message=f"Declared bundle entry {normalised} was not found in the source tree",
                            path=normalised,
                        )
                    )
                continue
            ordered.append(artifact)
            seen.add(normalised)
        ordered.extend(
            artifact for artifact in sorted(artifacts, key=lambda a: a.path) if artifact.path not in seen
        )
        return ordered, issues

    def bundle(
        self,
        artifacts: Sequence[SourceArtifact],
        kind: str,
        *,
        order: Sequence[str] = (),
        minify: bool = False,
    ) -> BundleOutput:
        if kind not in _MINIFIERS:
            raise ValueError(f"Cannot bundle artifacts of kind {kind!r}")
        selected = [artifact for artifact in artifacts if artifact.kind == kind]
        ordered, issues = self.order(selected, order, kind=kind)
        fingerprint = self.fingerprint(ordered, kind, minify=minify)

        cached = self._from_cache(fingerprint, kind)
        if cached is not None:
            self.logger.debug("Reusing cached %s bundle %s", kind, fingerprint[:12])
            return replace(cached, issues=tuple(issues) + cached.issues)

        text, bundle_issues = self._assemble(ordered, kind, minify=minify)
        output = BundleOutput(
            kind=kind,
            text=text,
            fingerprint=fingerprint,
            paths=tuple(artifact.path for artifact in ordered),
            issues=tuple(issues + bundle_issues),
        )
        if self.cache is not None:
            self.cache.store(
                fingerprint,
                {
                    "kind": kind,
                    "text": output.text,
                    "paths": list(output.paths),
                    "issues": [issue.to_dict() for issue in bundle_issues],
                },
            )
        return output

    def fingerprint(self, ordered: Sequence[SourceArtifact], kind: str, *, minify: bool) -> str:
        digest = hashlib.sha256()
        digest.update(f"bundle:{self.cache_version}:{kind}:{int(minify)}".encode("utf-8"))
        for artifact in ordered:
            digest.update(b"\0")
            digest.update(artifact.path.encode("utf-8"))
            digest.update(b"\0")
            digest.update(artifact.hash.encode("utf-8"))
        digest.update(str(len(ordered)).encode("utf-8"))
        return f"bundle:{digest.hexdigest()}"

    def _assemble(
        self, ordered: Sequence[SourceArtifact], kind: str, *, minify: bool
    ) -> Tuple[str, List[ValidationIssue]]:
        issues: List[ValidationIssue] = []
        parts: List[str] = []
        for artifact in ordered:
            try:
                text = artifact.content.decode("utf-8")
            except UnicodeDecodeError:
                text = artifact.content.decode("utf-8", errors="replace")
                issues.append(
                    ValidationIssue(
                        severity=SEVERITY_WARNING,
                        code="decode-error",
                        message=f"{artifact.path} is not valid UTF-8; invalid bytes were replaced",
                        path=artifact.path,
                    )
                )
            text = text.lstrip("\ufeff")
            # A leading ';' keeps one file's trailing expression from joining the next.
            banner = f";/* {artifact.path} */" if kind == KIND_CODE else f"/* {artifact.path} */"
            parts.append(f"{banner}\n{text.rstrip()}\n")
        body = "\n".join(parts)

        if minify and body:
            try:
                body = _MINIFIERS[kind](body)
            except TransformError as exc:
                self.logger.warning("Minification of %s bundle failed: %s", kind, exc)
                issues.append(
                    TransformError(f"Minification skipped for {kind} bundle: {exc}").to_issue()
                )

        if kind == KIND_CODE:
            body = f"{CAPABILITY_SHIM}\n{body}" if body else CAPABILITY_SHIM
        return body, issues

    def _from_cache(self, fingerprint: str, kind: str) -> Optional[BundleOutput]:
        if self.cache is None:
            return None
        payload = self.cache.get(fingerprint)
        if payload is None:
            return None
        text = payload.get("text")
        paths = payload.get("paths")
        raw_issues = payload.get("issues")
        if not isinstance(text, str) or not isinstance(paths, list) or not isinstance(raw_issues, list):
            return None
        issues = tuple(
            ValidationIssue(
                severity=str(raw.get("severity")),
                code=str(raw.get("code")),
                message=str(raw.get("message")),
                path=raw.get("path") if isinstance(raw.get("path"), str) else None,
            )
            for raw in raw_issues
            if isinstance(raw, dict)
        )
        return BundleOutput(
            kind=kind,
            text=text,
            fingerprint=fingerprint,
            paths=tuple(str(path) for path in paths),
            issues=issues,
        )


__all__ = ["BundleOutput", "CodeBundler"]
