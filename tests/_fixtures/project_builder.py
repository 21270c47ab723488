"""Helper utilities for constructing temporary svgpack projects in tests."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Any, Mapping

from svgpack.collector import CollectionResult, SourceCollector
from svgpack.config import BuildConfiguration


class ProjectBuilder:
    """Utility for writing source files into a throwaway project and collecting them."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.source = self.root / "src"
        self.source.mkdir(parents=True)
        self._collector = SourceCollector()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries under the source root."""
        for relative, content in files.items():
            path = self.source / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def write_bytes(self, relative: str, content: bytes) -> Path:
        path = self.source / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    def manifest(self, **fields: Any) -> None:
        self.write({"manifest.json": json.dumps(fields)})

    def basic_app(self, name: str = "Demo") -> None:
        """Write a minimal app: one script, one stylesheet and a manifest."""
        self.write(
            {
                "app.js": "var counter = 0;\nfunction tick() { counter += 1; }\n",
                "style.css": "svg { background: #fff; }\n",
            }
        )
        self.manifest(name=name)

    def config(self, **overrides: Any) -> BuildConfiguration:
        config = BuildConfiguration(
            source_root=self.source,
            output_path=self.root / "dist" / "app.svg",
            cache_path=None,
        )
        return config.with_overrides(**overrides)

    def collect(self, **overrides: Any) -> CollectionResult:
        return self._collector.collect(self.config(**overrides))


__all__ = ["ProjectBuilder"]
