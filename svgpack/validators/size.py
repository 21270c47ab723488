"""Size-ceiling check for composed documents."""

from __future__ import annotations

from typing import List

from ..errors import SizeLimitExceeded
from ..models import ValidationIssue
from .base import ValidationContext, Validator


class SizeValidator(Validator):
    """Reports documents larger than the configured ceiling."""

    name = "size"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        size = context.size
        if size <= context.ceiling:
            return []
        return [SizeLimitExceeded(size, context.ceiling, strict=context.strict).to_issue()]
