from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "graph_header_truncated",
        "graph_header_unsupported_version",
        "graph_header_empty",
        "graph_unavailable",
        "not_integer",
        "index_out_of_range",
        "invalid_coordinate",
        "router_unavailable",
        "snap_unavailable",
        "engine_error",
        "corrupt_result",
    }
)


@dataclass(eq=False)
class FacadeError(Exception):
    """Base of every error the facade reports to its callers.

    Not a ``ValueError``: raised inside a pydantic validator it propagates
    unchanged instead of becoming a 422.
    """

    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    status_code: ClassVar[int] = 500

    def __str__(self) -> str:
        return self.message

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.message,
            "reasonCode": normalize_reason_code(self.reason_code),
        }
        if self.details:
            payload["details"] = self.details
        return payload


class FormatError(FacadeError):
    # The facade refuses to route until a valid header is loaded.
    status_code = 503


class TruncatedHeader(FormatError):
    def __init__(self, length: int) -> None:
        super().__init__(
            reason_code="graph_header_truncated",
            message=f"graph header too small ({length} bytes)",
            details={"length": length},
        )


class UnsupportedVersion(FormatError):
    def __init__(self, version: int, supported: int) -> None:
        super().__init__(
            reason_code="graph_header_unsupported_version",
            message=f"Unsupported nodes version: {version}",
            details={"version": version, "supported": supported},
        )


class RouteValidationError(FacadeError):
    status_code = 400


class NotInteger(RouteValidationError):
    def __init__(self, field: str = "startIdx/endIdx") -> None:
        super().__init__(
            reason_code="not_integer",
            message="startIdx and endIdx must be integers",
            details={"field": field},
        )


class IndexOutOfRange(RouteValidationError):
    def __init__(self, value: int, num_nodes: int) -> None:
        super().__init__(
            reason_code="index_out_of_range",
            message=f"startIdx/endIdx out of range (0..{num_nodes - 1})",
            details={"value": value, "num_nodes": num_nodes},
        )


class InvalidCoordinate(RouteValidationError):
    def __init__(self) -> None:
        super().__init__(reason_code="invalid_coordinate", message="Invalid lat/lon")


class EngineUnavailable(FacadeError):
    status_code = 503


class EngineError(FacadeError):
    status_code = 500

    @classmethod
    def from_engine(cls, err: object) -> EngineError:
        return cls(reason_code="engine_error", message=str(err) or type(err).__name__)


class CorruptResult(FacadeError):
    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(reason_code="corrupt_result", message=f"engine returned a corrupt result: {detail}")


def normalize_reason_code(reason_code: str, *, default: str = "engine_error") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
