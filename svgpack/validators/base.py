"""Core validation data structures and helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from ..models import ValidationIssue


@dataclass
class ValidationContext:
    """The composed document and the limits it is checked against."""

    document: str
    ceiling: int
    strict: bool = False

    @property
    def size(self) -> int:
        return len(self.document.encode("utf-8"))


class Validator(Protocol):
    """Protocol implemented by document validators."""

    name: str

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        """Run validation and return any issues."""


def default_validators() -> List[Validator]:
    from .features import FeatureValidator
    from .size import SizeValidator
    from .structure import StructureValidator

    return [StructureValidator(), FeatureValidator(), SizeValidator()]


def validate_document(
    document: str,
    *,
    ceiling: int,
    strict: bool = False,
    validators: Optional[Sequence[Validator]] = None,
) -> List[ValidationIssue]:
    """Run every validator against ``document`` and return all issues found.

    Validators are independent: a failing check never prevents the others
    from running, so one pass reports every defect.
    """
    context = ValidationContext(document=document, ceiling=ceiling, strict=strict)
    issues: List[ValidationIssue] = []
    for validator in validators if validators is not None else default_validators():
        issues.extend(validator.validate(context))
    return issues
