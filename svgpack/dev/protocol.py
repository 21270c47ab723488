"""Messages exchanged with live-preview clients."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from ..models import BuildResult, ValidationIssue

# server -> client
RELOAD = "reload"
BUILD_SUCCESS = "build-success"
BUILD_ERROR = "build-error"
STATUS = "status"
ERROR = "error"

# client -> server
REBUILD_REQUEST = "rebuild-request"
STATUS_REQUEST = "status-request"

CLIENT_MESSAGES = frozenset({REBUILD_REQUEST, STATUS_REQUEST})


class ProtocolError(ValueError):
    """Raised for client messages that do not follow the push protocol."""


def reload_message(sequence: int) -> Dict[str, Any]:
    return {"type": RELOAD, "sequence": sequence}


def build_success_message(result: BuildResult) -> Dict[str, Any]:
    return {
        "type": BUILD_SUCCESS,
        "sequence": result.sequence,
        "duration": round(result.duration, 6),
    }


def build_error_message(sequence: int, issues: Sequence[ValidationIssue]) -> Dict[str, Any]:
    return {
        "type": BUILD_ERROR,
        "sequence": sequence,
        "issues": [
            {"severity": issue.severity, "message": issue.message, "code": issue.code}
            for issue in issues
        ],
    }


def status_message(
    *, building: bool, last_build_timestamp: Optional[float], subscriber_count: int
) -> Dict[str, Any]:
    return {
        "type": STATUS,
        "building": building,
        "lastBuildTimestamp": last_build_timestamp,
        "subscriberCount": subscriber_count,
    }


def error_message(detail: str) -> Dict[str, Any]:
    return {"type": ERROR, "message": detail}


def parse_client_message(message: Any) -> str:
    """Return the message type of a client message or raise :class:`ProtocolError`."""
    if not isinstance(message, Mapping):
        raise ProtocolError("Client messages must be JSON objects")
    kind = message.get("type")
    if kind not in CLIENT_MESSAGES:
        raise ProtocolError(f"Unsupported client message type: {kind!r}")
    return str(kind)


__all__ = [
    "BUILD_ERROR",
    "BUILD_SUCCESS",
    "ERROR",
    "ProtocolError",
    "REBUILD_REQUEST",
    "RELOAD",
    "STATUS",
    "STATUS_REQUEST",
    "build_error_message",
    "build_success_message",
    "error_message",
    "parse_client_message",
    "reload_message",
    "status_message",
]
