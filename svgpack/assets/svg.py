"""Size-reducing transform for embedded SVG images."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Dict

from ..errors import TransformError

LOAD_BEARING_ATTRIBUTES = ("viewBox", "width", "height", "preserveAspectRatio")

_PROLOG = re.compile(r"^\s*<\?xml[^>]*\?>\s*")
_DOCTYPE = re.compile(r"<!DOCTYPE[^>\[]*(?:\[.*?\])?\s*>\s*", re.S | re.I)
_COMMENT = re.compile(r"<!--.*?-->", re.S)
_METADATA = re.compile(r"<(?:svg:)?metadata\b[^>]*?(?:/>|>.*?</(?:svg:)?metadata\s*>)", re.S)
_INDENT = re.compile(r">\s*\n\s*<")
_ROOT_TAG = re.compile(r"<(?:svg:)?svg\b([^>]*)>", re.S)
_ATTRIBUTE = re.compile(r"([\w:.-]+)\s*=\s*(\"[^\"]*\"|'[^']*')")


def root_attributes(text: str) -> Dict[str, str]:
    """Return the attributes declared on the first ``<svg>`` tag."""
    match = _ROOT_TAG.search(text)
    if not match:
        return {}
    return {name: value[1:-1] for name, value in _ATTRIBUTE.findall(match.group(1))}


def optimize_svg(text: str) -> str:
    """Drop comments, prolog, DOCTYPE, editor metadata and indentation.

    Raises :class:`TransformError` when the input is not a well-formed SVG
    document or when the result would change the root's sizing attributes.
    """
    root = _parse(text, "input")
    if root.tag.rsplit("}", 1)[-1] != "svg":
        raise TransformError("Root element is not <svg>")
    before = root_attributes(text)

    result = _PROLOG.sub("", text, count=1)
    result = _DOCTYPE.sub("", result)
    if "<![CDATA[" not in result:
        result = _COMMENT.sub("", result)
    result = _METADATA.sub("", result)
    # Whitespace between text nodes is rendered; leave documents with text alone.
    if "<text" not in result:
        result = _INDENT.sub("><", result)
    result = result.strip()

    _parse(result, "output")
    after = root_attributes(result)
    for name in LOAD_BEARING_ATTRIBUTES:
        if before.get(name) != after.get(name):
            raise TransformError(f"Optimisation would change the root {name} attribute")
    return result


def _parse(text: str, label: str) -> ET.Element:
    try:
        return ET.fromstring(text.encode("utf-8"))
    except ET.ParseError as exc:
        raise TransformError(f"SVG {label} is not well-formed: {exc}") from exc


__all__ = ["LOAD_BEARING_ATTRIBUTES", "optimize_svg", "root_attributes"]
