"""Core data models shared across svgpack components."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

KIND_CODE = "code"
KIND_STYLE = "style"
KIND_ASSET = "asset"
KIND_MANIFEST = "manifest"

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"


@dataclass(frozen=True)
class SourceArtifact:
    """A single file collected from the source tree."""

    path: str
    kind: str
    content: bytes = field(repr=False)
    hash: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class AssetEntry:
    """Binary asset encoded as an inline data URI."""

    name: str
    mime_type: str
    data_uri: str = field(repr=False)
    source_hash: str

    @property
    def size(self) -> int:
        return len(self.data_uri.encode("utf-8"))


@dataclass(frozen=True)
class ValidationIssue:
    """A problem found while collecting, transforming, composing or validating."""

    severity: str
    code: str
    message: str
    path: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == SEVERITY_ERROR

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
        }
        if self.path is not None:
            payload["path"] = self.path
        return payload


@dataclass
class CompositeDocument:
    """Skeleton text plus the values to substitute into its placeholders."""

    skeleton: str
    values: Mapping[str, str]
    required: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class BuildResult:
    """Outcome of one pipeline pass."""

    document: str = field(repr=False)
    issues: Tuple[ValidationIssue, ...]
    size: int
    duration: float
    success: bool
    sequence: int = 0
    finished_at: Optional[float] = None

    @property
    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if not issue.is_error]


def has_errors(issues: Sequence[ValidationIssue]) -> bool:
    """Return True when any issue carries error severity."""
    return any(issue.is_error for issue in issues)
