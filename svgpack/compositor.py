"""Placeholder substitution into the skeleton document."""

from __future__ import annotations

import re
from collections import Counter
from pathlib import Path
from typing import List, Mapping, Tuple

from .errors import CompositionError
from .logging import get_logger
from .models import CompositeDocument

PLACEHOLDER_PATTERN = re.compile(r"\{\{([A-Z][A-Z0-9_]*)\}\}")
DEFAULT_SKELETON = Path(__file__).with_name("templates") / "skeleton.svg"

JS = "JS"
CSS = "CSS"
METADATA = "METADATA"
ASSETS = "ASSETS"
TITLE = "TITLE"
THEME_COLOR = "THEME_COLOR"

CORE_PLACEHOLDERS = frozenset({JS, CSS, METADATA})

logger = get_logger("compositor")


def token(name: str) -> str:
    """Return the literal skeleton token for ``name``."""
    return "{{" + name + "}}"


def find_placeholders(skeleton: str) -> List[str]:
    """Return placeholder names in the order they occur in ``skeleton``."""
    return [match.group(1) for match in PLACEHOLDER_PATTERN.finditer(skeleton)]


def load_skeleton(path: Path | None) -> str:
    target = path or DEFAULT_SKELETON
    return target.read_text(encoding="utf-8")


def wrap_cdata(text: str) -> str:
    """Wrap ``text`` in a CDATA section, splitting any embedded terminator."""
    return "<![CDATA[\n" + text.replace("]]>", "]]]]><![CDATA[>") + "\n]]>"


def _split(skeleton: str) -> Tuple[List[str], List[str]]:
    literals: List[str] = []
    names: List[str] = []
    position = 0
    for match in PLACEHOLDER_PATTERN.finditer(skeleton):
        literals.append(skeleton[position : match.start()])
        names.append(match.group(1))
        position = match.end()
    literals.append(skeleton[position:])
    return literals, names


def compose(document: CompositeDocument) -> str:
    """Substitute every skeleton placeholder exactly once.

    The skeleton is tokenised before any value is inserted and the output is
    assembled from its literal segments, so placeholder-shaped text inside a
    value is never treated as a placeholder.
    """
    literals, names = _split(document.skeleton)
    counts = Counter(names)
    duplicates = {name for name, count in counts.items() if count > 1}
    unresolved = {name for name in counts if name not in document.values}
    missing = {name for name in document.required if name not in counts}

    if duplicates or unresolved or missing:
        problems = []
        if missing:
            problems.append(
                "skeleton has no placeholder for " + ", ".join(token(n) for n in sorted(missing))
            )
        if unresolved:
            problems.append(
                "no value supplied for " + ", ".join(token(n) for n in sorted(unresolved))
            )
        if duplicates:
            problems.append(
                "placeholder used more than once: " + ", ".join(token(n) for n in sorted(duplicates))
            )
        raise CompositionError(
            "Cannot compose document: " + "; ".join(problems),
            missing=missing,
            unresolved=unresolved,
            duplicates=duplicates,
        )

    parts: List[str] = [literals[0]]
    for name, literal in zip(names, literals[1:]):
        parts.append(document.values[name])
        parts.append(literal)
    logger.debug("Substituted %d placeholders", len(names))
    return "".join(parts)


def build_values(
    *,
    js: str,
    css: str,
    metadata: str,
    assets: str,
    require_assets: bool = False,
    title: str = "",
    theme_color: str = "",
) -> Tuple[Mapping[str, str], frozenset]:
    """Return the placeholder values and the subset the skeleton must contain."""
    values = {
        JS: wrap_cdata(js),
        CSS: wrap_cdata(css),
        METADATA: metadata,
        TITLE: title,
        THEME_COLOR: theme_color,
        ASSETS: wrap_cdata(assets),
    }
    required = set(CORE_PLACEHOLDERS)
    if require_assets:
        required.add(ASSETS)
    return values, frozenset(required)


__all__ = [
    "ASSETS",
    "CORE_PLACEHOLDERS",
    "CSS",
    "DEFAULT_SKELETON",
    "JS",
    "METADATA",
    "PLACEHOLDER_PATTERN",
    "THEME_COLOR",
    "TITLE",
    "build_values",
    "compose",
    "find_placeholders",
    "load_skeleton",
    "token",
    "wrap_cdata",
]
