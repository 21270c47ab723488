"""Well-formedness check for composed documents."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import List

from ..compositor import PLACEHOLDER_PATTERN
from ..models import SEVERITY_ERROR, SEVERITY_WARNING, ValidationIssue
from .base import ValidationContext, Validator

SVG_NAMESPACE = "http://www.w3.org/2000/svg"

# Placeholder-shaped text inside these elements is program text, not a token.
_OPAQUE_ELEMENTS = {"script", "style"}


class StructureValidator(Validator):
    """Rejects documents that are not well-formed SVG."""

    name = "structure"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        try:
            root = ET.fromstring(context.document.encode("utf-8"))
        except ET.ParseError as exc:
            line, column = getattr(exc, "position", (None, None))
            location = f" at line {line}, column {column}" if line is not None else ""
            return [
                ValidationIssue(
                    severity=SEVERITY_ERROR,
                    code="structure",
                    message=f"Document is not well-formed XML{location}: {exc}",
                )
            ]
        expected = f"{{{SVG_NAMESPACE}}}svg"
        if root.tag != expected:
            return [
                ValidationIssue(
                    severity=SEVERITY_ERROR,
                    code="structure",
                    message=f"Root element must be <svg> in the {SVG_NAMESPACE} namespace, found {root.tag!r}",
                )
            ]
        leftovers = sorted(_leftover_placeholders(root))
        if leftovers:
            return [
                ValidationIssue(
                    severity=SEVERITY_WARNING,
                    code="leftover-placeholder",
                    message="Placeholder-shaped text remains in the document: "
                    + ", ".join("{{" + name + "}}" for name in leftovers),
                )
            ]
        return []


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _leftover_placeholders(root: ET.Element) -> set:
    found = set()
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        texts = list(element.attrib.values())
        if _local_name(element.tag) not in _OPAQUE_ELEMENTS and element.text:
            texts.append(element.text)
        if element.tail:
            texts.append(element.tail)
        for text in texts:
            found.update(match.group(1) for match in PLACEHOLDER_PATTERN.finditer(text))
    return found
