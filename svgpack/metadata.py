"""Installable-app metadata rendering."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import escape

from .logging import get_logger
from .models import (
    KIND_MANIFEST,
    SEVERITY_ERROR,
    SEVERITY_WARNING,
    SourceArtifact,
    ValidationIssue,
)

MANIFEST_NAMESPACE = "urn:svgpack:manifest"
TEMPLATES_DIR = Path(__file__).with_name("templates")

FIELD_ORDER = (
    "name",
    "short_name",
    "description",
    "start_url",
    "display",
    "theme_color",
    "background_color",
)
DISPLAY_MODES = ("fullscreen", "standalone", "minimal-ui", "browser")
DEFAULT_START_URL = "."
DEFAULT_DISPLAY = "standalone"


@dataclass
class MetadataBlock:
    """Rendered metadata markup plus the normalised manifest it was built from."""

    text: str
    manifest: Dict[str, str]
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def title(self) -> str:
        return str(escape(self.manifest.get("name", "")))

    @property
    def theme_color(self) -> str:
        return str(escape(self.manifest.get("theme_color", "")))


def load_manifest(
    artifacts: Sequence[SourceArtifact], overrides: Mapping[str, Any] | None = None
) -> Tuple[Dict[str, Any], List[ValidationIssue]]:
    """Merge the first manifest artifact with configuration overrides."""
    data: Dict[str, Any] = {}
    issues: List[ValidationIssue] = []
    manifests = sorted(
        (artifact for artifact in artifacts if artifact.kind == KIND_MANIFEST),
        key=lambda artifact: artifact.path,
    )
    if manifests:
        source = manifests[0]
        if len(manifests) > 1:
            ignored = ", ".join(artifact.path for artifact in manifests[1:])
            issues.append(
                ValidationIssue(
                    severity=SEVERITY_WARNING,
                    code="manifest-duplicate",
                    message=f"Using {source.path}; ignoring additional manifests: {ignored}",
                    path=source.path,
                )
            )
        try:
            loaded = json.loads(source.content.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            issues.append(
                ValidationIssue(
                    severity=SEVERITY_ERROR,
                    code="manifest-parse-error",
                    message=f"Unable to parse {source.path}: {exc}",
                    path=source.path,
                )
            )
        else:
            if isinstance(loaded, dict):
                data.update(loaded)
            else:
                issues.append(
                    ValidationIssue(
                        severity=SEVERITY_ERROR,
                        code="manifest-parse-error",
                        message=f"{source.path} must contain a JSON object",
                        path=source.path,
                    )
                )
    if overrides:
        data.update(overrides)
    return data, issues


class MetadataGenerator:
    """Renders manifest fields into an escaped block for the skeleton."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        directories = [str(templates_dir)] if templates_dir else []
        if str(TEMPLATES_DIR) not in directories:
            directories.append(str(TEMPLATES_DIR))
        # Autoescape is unconditional: unescaped metadata corrupts the whole document.
        self._env = Environment(
            loader=FileSystemLoader(directories),
            autoescape=select_autoescape(default=True, default_for_string=True),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )
        self.logger = get_logger("metadata")

    def normalise(self, data: Mapping[str, Any]) -> Tuple[Dict[str, str], List[ValidationIssue]]:
        issues: List[ValidationIssue] = []
        manifest: Dict[str, str] = {}
        for key in FIELD_ORDER:
            value = data.get(key)
            if value is None or isinstance(value, (dict, list)):
                continue
            text = str(value).strip()
            if text:
                manifest[key] = text

        if "name" in manifest:
            manifest.setdefault("short_name", manifest["name"])
        manifest.setdefault("start_url", DEFAULT_START_URL)

        display = manifest.get("display", DEFAULT_DISPLAY)
        if display not in DISPLAY_MODES:
            issues.append(
                ValidationIssue(
                    severity=SEVERITY_WARNING,
                    code="manifest-display",
                    message=f"Unknown display mode {display!r}; using {DEFAULT_DISPLAY!r}",
                )
            )
            display = DEFAULT_DISPLAY
        manifest["display"] = display
        return manifest, issues

    def render(self, data: Mapping[str, Any]) -> MetadataBlock:
        manifest, issues = self.normalise(data)
        fields = [(key, manifest[key]) for key in FIELD_ORDER if key in manifest]
        template = self._env.get_template("metadata.xml.j2")
        text = template.render(
            namespace=MANIFEST_NAMESPACE,
            fields=fields,
            manifest_href=manifest_data_uri(manifest),
        )
        self.logger.debug("Rendered metadata block with %d fields", len(fields))
        return MetadataBlock(text=text.strip(), manifest=manifest, issues=issues)


def manifest_data_uri(manifest: Mapping[str, str]) -> str:
    payload = json.dumps(dict(manifest), sort_keys=True, separators=(",", ":"))
    encoded = base64.b64encode(payload.encode("utf-8")).decode("ascii")
    return f"data:application/manifest+json;base64,{encoded}"


__all__ = [
    "DISPLAY_MODES",
    "FIELD_ORDER",
    "MANIFEST_NAMESPACE",
    "MetadataBlock",
    "MetadataGenerator",
    "load_manifest",
    "manifest_data_uri",
]
