"""Exception hierarchy for the packaging pipeline."""

from __future__ import annotations

from typing import Iterable

from .models import SEVERITY_ERROR, SEVERITY_WARNING, ValidationIssue

# Issue codes shared between pipeline stages and validators.
READ_ERROR = "read-error"
TRANSFORM_ERROR = "transform-error"
COMPOSITION_ERROR = "composition-error"
SIZE_LIMIT_EXCEEDED = "size-limit-exceeded"
ASSET_SIZE_LIMIT_EXCEEDED = "asset-size-limit-exceeded"
INTERNAL_ERROR = "internal-error"


class SvgpackError(RuntimeError):
    """Base class for errors raised by svgpack."""

    code = INTERNAL_ERROR

    def to_issue(self, *, path: str | None = None) -> ValidationIssue:
        return ValidationIssue(
            severity=SEVERITY_ERROR, code=self.code, message=str(self), path=path
        )


class ReadError(SvgpackError):
    """Raised when a source artifact cannot be read."""

    code = READ_ERROR

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Unable to read {path}: {reason}")
        self.path = path
        self.reason = reason

    def to_issue(self, *, path: str | None = None) -> ValidationIssue:
        return super().to_issue(path=path or self.path)


class TransformError(SvgpackError):
    """Raised when minification or optimisation cannot complete."""

    code = TRANSFORM_ERROR

    def to_issue(self, *, path: str | None = None) -> ValidationIssue:
        # Transform failures always degrade to the untransformed input.
        return ValidationIssue(
            severity=SEVERITY_WARNING, code=self.code, message=str(self), path=path
        )


class CompositionError(SvgpackError):
    """Raised when skeleton placeholders and supplied values do not line up."""

    code = COMPOSITION_ERROR

    def __init__(
        self,
        message: str,
        *,
        missing: Iterable[str] = (),
        unresolved: Iterable[str] = (),
        duplicates: Iterable[str] = (),
    ) -> None:
        super().__init__(message)
        self.missing = sorted(missing)
        self.unresolved = sorted(unresolved)
        self.duplicates = sorted(duplicates)


class SizeLimitExceeded(SvgpackError):
    """A composed document larger than the configured ceiling.

    Reported as a warning unless ``strict`` promotes it to an error.
    """

    code = SIZE_LIMIT_EXCEEDED

    def __init__(self, size: int, ceiling: int, *, strict: bool = False) -> None:
        super().__init__(
            f"Document is {size} bytes, {size - ceiling} over the {ceiling} byte ceiling"
        )
        self.size = size
        self.ceiling = ceiling
        self.strict = strict

    def to_issue(self, *, path: str | None = None) -> ValidationIssue:
        return ValidationIssue(
            severity=size_severity(self.strict), code=self.code, message=str(self), path=path
        )


def size_severity(strict: bool) -> str:
    """Severity used for size-ceiling issues under the given strict flag."""
    return SEVERITY_ERROR if strict else SEVERITY_WARNING


__all__ = [
    "ASSET_SIZE_LIMIT_EXCEEDED",
    "COMPOSITION_ERROR",
    "CompositionError",
    "INTERNAL_ERROR",
    "READ_ERROR",
    "ReadError",
    "SIZE_LIMIT_EXCEEDED",
    "SizeLimitExceeded",
    "SvgpackError",
    "TRANSFORM_ERROR",
    "TransformError",
    "size_severity",
]
