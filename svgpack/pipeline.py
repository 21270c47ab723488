"""One full packaging pass: collect, bundle, embed, compose, validate."""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from .assets import EmbedResult, render_asset_map
from .bundler import BundleOutput
from .collector import CollectionResult
from .compositor import build_values, compose, load_skeleton
from .config import BuildConfiguration
from .errors import CompositionError
from .logging import get_logger
from .metadata import MetadataBlock, load_manifest
from .models import (
    KIND_CODE,
    KIND_STYLE,
    BuildResult,
    CompositeDocument,
    ValidationIssue,
    has_errors,
)
from .registry import ComponentRegistry
from .validators import validate_document


@dataclass
class _FanOut:
    js: BundleOutput
    css: BundleOutput
    assets: EmbedResult
    metadata: MetadataBlock
    manifest_issues: List[ValidationIssue] = field(default_factory=list)


class Pipeline:
    """Runs the packaging stages for one output target.

    ``build`` is serialized per instance; bundling, embedding and metadata
    rendering run concurrently inside a build and all finish before
    composition starts.
    """

    def __init__(
        self, config: BuildConfiguration, registry: ComponentRegistry | None = None
    ) -> None:
        self.config = config
        self.registry = registry or ComponentRegistry.for_config(config)
        self.logger = get_logger("pipeline")
        self._lock = threading.Lock()
        self._used_cache_keys: List[str] = []

    def build(self, *, sequence: int = 0) -> BuildResult:
        """Produce a :class:`BuildResult` without touching the output path.

        Raises :class:`CompositionError` when the skeleton and the generated
        values do not line up; no partial document is returned in that case.
        """
        with self._lock:
            started = time.perf_counter()
            config = self.config
            collection = self.registry.collector.collect(config)
            skeleton = self._load_skeleton()

            fan_out = self._fan_out(collection)
            values, required = build_values(
                js=fan_out.js.text,
                css=fan_out.css.text,
                metadata=fan_out.metadata.text,
                assets=render_asset_map(fan_out.assets.entries),
                require_assets=bool(fan_out.assets.entries),
                title=fan_out.metadata.title,
                theme_color=fan_out.metadata.theme_color,
            )
            document = compose(CompositeDocument(skeleton=skeleton, values=values, required=required))

            issues: List[ValidationIssue] = []
            issues.extend(collection.issues)
            issues.extend(fan_out.js.issues)
            issues.extend(fan_out.css.issues)
            issues.extend(fan_out.assets.issues)
            issues.extend(fan_out.manifest_issues)
            issues.extend(fan_out.metadata.issues)
            issues.extend(
                validate_document(
                    document,
                    ceiling=config.size_ceiling,
                    strict=config.strict,
                    validators=self.registry.validators,
                )
            )

            self._used_cache_keys = [fan_out.js.fingerprint, fan_out.css.fingerprint]
            self._used_cache_keys.extend(fan_out.assets.cache_keys)

            size = len(document.encode("utf-8"))
            duration = time.perf_counter() - started
            result = BuildResult(
                document=document,
                issues=tuple(issues),
                size=size,
                duration=duration,
                success=not has_errors(issues),
                sequence=sequence,
                finished_at=time.time(),
            )
            self.logger.info(
                "Build %d %s in %.3fs: %d bytes, %d error(s), %d warning(s)",
                sequence,
                "succeeded" if result.success else "failed",
                duration,
                size,
                len(result.errors),
                len(result.warnings),
            )
            return result

    def run(self, *, sequence: int = 0) -> BuildResult:
        """Build, then write the output and persist the cache when successful."""
        result = self.build(sequence=sequence)
        if result.success:
            write_output(self.config.output_path, result.document)
            self.logger.info("Wrote %s", self.config.output_path)
            self.registry.cache.prune(self._used_cache_keys)
        else:
            for issue in result.errors:
                self.logger.error("[%s] %s", issue.code, issue.message)
        try:
            self.registry.cache.persist()
        except OSError as exc:
            self.logger.warning("Unable to persist build cache: %s", exc)
        return result

    def _load_skeleton(self) -> str:
        try:
            return load_skeleton(self.config.template_path)
        except OSError as exc:
            raise CompositionError(f"Unable to read skeleton {self.config.template_path}: {exc}") from exc

    def _fan_out(self, collection: CollectionResult) -> _FanOut:
        config = self.config
        registry = self.registry
        artifacts = collection.artifacts

        def _bundle() -> Tuple[BundleOutput, BundleOutput]:
            js = registry.bundler.bundle(
                artifacts, KIND_CODE, order=config.bundle_order, minify=config.minify
            )
            css = registry.bundler.bundle(
                artifacts, KIND_STYLE, order=config.bundle_order, minify=config.minify
            )
            return js, css

        def _embed() -> EmbedResult:
            return registry.embedder.embed(
                artifacts,
                ceiling=config.size_ceiling,
                strict=config.strict,
                optimize=config.optimize,
            )

        def _metadata() -> Tuple[MetadataBlock, List[ValidationIssue]]:
            data, issues = load_manifest(artifacts, config.manifest)
            return registry.metadata.render(data), issues

        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="svgpack-build") as pool:
            bundle_future = pool.submit(_bundle)
            embed_future = pool.submit(_embed)
            metadata_future = pool.submit(_metadata)
            # Barrier: every branch must finish before composition.
            js, css = bundle_future.result()
            assets = embed_future.result()
            metadata_block, manifest_issues = metadata_future.result()

        return _FanOut(
            js=js,
            css=css,
            assets=assets,
            metadata=metadata_block,
            manifest_issues=manifest_issues,
        )


def write_output(path: Path, document: str) -> None:
    """Atomically replace ``path`` with ``document``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_text(document, encoding="utf-8")
    os.replace(tmp_path, path)


__all__ = ["Pipeline", "write_output"]
