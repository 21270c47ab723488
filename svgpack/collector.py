"""Source tree scanning and artifact classification."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence, Set

from .config import CONFIG_FILENAME, STATE_DIRNAME, BuildConfiguration
from .errors import ReadError
from .logging import get_logger
from .models import (
    KIND_ASSET,
    KIND_CODE,
    KIND_MANIFEST,
    KIND_STYLE,
    SourceArtifact,
    ValidationIssue,
)

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".idea",
    ".vscode",
    STATE_DIRNAME,
}

_EXCLUDED_FILES = {
    CONFIG_FILENAME,
    ".gitignore",
    ".DS_Store",
    "Thumbs.db",
}

_KIND_BY_SUFFIX = {
    ".js": KIND_CODE,
    ".mjs": KIND_CODE,
    ".css": KIND_STYLE,
    ".webmanifest": KIND_MANIFEST,
}

_MANIFEST_NAMES = {"manifest.json", "app.webmanifest", "manifest.webmanifest"}


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or the exclude setting."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def classify(rel_path: str) -> str:
    """Return the artifact kind for a path relative to the source root."""
    name = rel_path.rsplit("/", 1)[-1].lower()
    if name in _MANIFEST_NAMES:
        return KIND_MANIFEST
    suffix = os.path.splitext(name)[1]
    return _KIND_BY_SUFFIX.get(suffix, KIND_ASSET)


def hash_bytes(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


@dataclass
class CollectionResult:
    """Artifacts discovered in one scan plus any per-file problems."""

    artifacts: List[SourceArtifact] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)


class SourceCollector:
    """Walks the source root and produces hashed, classified artifacts."""

    def __init__(self) -> None:
        self.logger = get_logger("collector")

    def collect(self, config: BuildConfiguration) -> CollectionResult:
        root = config.source_root.expanduser().resolve()
        if not root.exists():
            raise FileNotFoundError(f"Source root not found: {root}")
        if not root.is_dir():
            raise NotADirectoryError(f"Source root is not a directory: {root}")

        result = CollectionResult()
        try:
            rules = _parse_gitignore(root / ".gitignore")
        except (OSError, UnicodeDecodeError) as exc:
            error = ReadError(".gitignore", getattr(exc, "strerror", None) or str(exc))
            self.logger.warning("%s; continuing without its rules", error)
            result.issues.append(error.to_issue())
            rules = []
        for pattern in config.exclude:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                rules.append(rule)

        skip = {config.output_path.expanduser().resolve()}
        if config.template_path is not None:
            skip.add(config.template_path.expanduser().resolve())
        if config.cache_path is not None:
            skip.add(config.cache_path.expanduser().resolve())

        for path in self._iter_files(root, rules, skip, result.issues):
            rel_path = path.relative_to(root).as_posix()
            try:
                content = self._read(path, rel_path)
            except ReadError as exc:
                self.logger.warning("%s", exc)
                result.issues.append(exc.to_issue())
                continue
            result.artifacts.append(
                SourceArtifact(
                    path=rel_path,
                    kind=classify(rel_path),
                    content=content,
                    hash=hash_bytes(content),
                )
            )

        result.artifacts.sort(key=lambda artifact: artifact.path)
        self.logger.debug(
            "Collected %d artifacts from %s (%d unreadable)",
            len(result.artifacts),
            root,
            len(result.issues),
        )
        return result

    @staticmethod
    def _read(path: Path, rel_path: str) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise ReadError(rel_path, exc.strerror or str(exc)) from exc

    def _iter_files(
        self,
        root: Path,
        rules: Sequence[IgnoreRule],
        skip: Set[Path],
        issues: List[ValidationIssue],
    ) -> Iterator[Path]:
        def _unlistable(exc: OSError) -> None:
            location = Path(exc.filename) if exc.filename else root
            try:
                rel_path = location.relative_to(root).as_posix() or "."
            except ValueError:
                rel_path = str(location)
            error = ReadError(rel_path, exc.strerror or str(exc))
            self.logger.warning("%s", error)
            issues.append(error.to_issue())

        for dirpath, dirnames, filenames in os.walk(root, onerror=_unlistable):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            kept_dirs = []
            for name in sorted(dirnames):
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, rules):
                    continue
                kept_dirs.append(name)
            dirnames[:] = kept_dirs

            for filename in sorted(filenames):
                if filename in _EXCLUDED_FILES:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, rules):
                    continue
                path = current_dir / filename
                if path.resolve() in skip:
                    continue
                yield path


__all__ = ["CollectionResult", "IgnoreRule", "SourceCollector", "classify", "hash_bytes"]
