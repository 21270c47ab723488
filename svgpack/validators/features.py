"""Feature-completeness check for composed documents."""

from __future__ import annotations

import re
from typing import List

from ..bundler.shim import declared_capabilities
from ..metadata import MANIFEST_NAMESPACE
from ..models import SEVERITY_ERROR, SEVERITY_WARNING, ValidationIssue
from .base import ValidationContext, Validator

_METADATA_BLOCK = re.compile(r"<metadata\b[^>]*>(.*?)</metadata\s*>", re.S)
_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>(.*?)</script\s*>", re.S)
_STYLE_BLOCK = re.compile(r"<style\b[^>]*>", re.S)
_NAME_FIELD = re.compile(r"<(?:\w+:)?name>(.*?)</(?:\w+:)?name>", re.S)
_CDATA_MARKERS = re.compile(r"<!\[CDATA\[|\]\]>")

REQUIRED_CAPABILITIES = ("offline", "storage")


class FeatureValidator(Validator):
    """Checks for the blocks an installable offline document needs.

    The checks are textual so they still report when the document is not
    well-formed.
    """

    name = "features"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        document = context.document
        issues: List[ValidationIssue] = []

        manifest_block = None
        for match in _METADATA_BLOCK.finditer(document):
            if MANIFEST_NAMESPACE in match.group(1):
                manifest_block = match.group(1)
                break
        if manifest_block is None:
            issues.append(
                _error("missing-metadata", "Document has no <metadata> block carrying the app manifest")
            )
        else:
            name_match = _NAME_FIELD.search(manifest_block)
            if name_match is None or not name_match.group(1).strip():
                issues.append(
                    _error("missing-metadata-field", "App manifest is missing the required 'name' field")
                )

        scripts = [_CDATA_MARKERS.sub("", body).strip() for body in _SCRIPT_BLOCK.findall(document)]
        if not any(scripts):
            issues.append(_error("missing-logic", "Document has no executable <script> block"))

        if not _STYLE_BLOCK.search(document):
            issues.append(
                ValidationIssue(
                    severity=SEVERITY_WARNING,
                    code="missing-style",
                    message="Document has no <style> block",
                )
            )

        declared = declared_capabilities("\n".join(scripts))
        if not any(name in declared for name in REQUIRED_CAPABILITIES):
            issues.append(
                _error(
                    "missing-capability",
                    "Logic block does not declare offline or storage capability support",
                )
            )
        return issues


def _error(code: str, message: str) -> ValidationIssue:
    return ValidationIssue(severity=SEVERITY_ERROR, code=code, message=message)
