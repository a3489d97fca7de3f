"""Response envelope shared by every CLI command.

In ``--json`` mode each command prints exactly one envelope::

    {
        "success": true,
        "exit_code": 0,
        "command": "sequence",
        "data": {...},
        "errors": [],
        "warnings": [],
        "metadata": {"timestamp": "...", "version": "1.0"}
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from defi_flow.errors import AggregateError, FlowError


class CliErrorCode(str, Enum):
    """Machine-readable error codes for CLI output."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIG_INVALID = "CONFIG_INVALID"
    FLOW_FILE_ERROR = "FLOW_FILE_ERROR"
    NODE_NOT_FOUND = "NODE_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CYCLE_DETECTED = "CYCLE_DETECTED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    MISSING_ASSET = "MISSING_ASSET"
    NETWORK_ERROR = "NETWORK_ERROR"
    CONTRACT_ERROR = "CONTRACT_ERROR"


_FLOW_ERROR_CODES: dict[str, CliErrorCode] = {
    "CONFIG_ERROR": CliErrorCode.CONFIG_INVALID,
    "FLOW_FILE_ERROR": CliErrorCode.FLOW_FILE_ERROR,
    "STEP_VALIDATION": CliErrorCode.VALIDATION_ERROR,
    "AGGREGATE_ERROR": CliErrorCode.VALIDATION_ERROR,
    "CYCLE_DETECTED": CliErrorCode.CYCLE_DETECTED,
    "INVALID_ARGUMENTS": CliErrorCode.INVALID_ARGUMENT,
    "MISSING_ASSET": CliErrorCode.MISSING_ASSET,
    "EXTERNAL_READ_FAILED": CliErrorCode.NETWORK_ERROR,
    "CONTRACT_CALL_FAILED": CliErrorCode.CONTRACT_ERROR,
    "NO_RETURN_VALUE": CliErrorCode.CONTRACT_ERROR,
}


@dataclass
class CliError:
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result

    @classmethod
    def from_flow_error(cls, error: FlowError) -> CliError:
        code = _FLOW_ERROR_CODES.get(error.error_code, CliErrorCode.INTERNAL_ERROR)
        return cls(code=code.value, message=error.message, details=dict(error.context))


@dataclass
class CliResponse:
    """Outcome of one CLI command; ``exit_code`` follows ``success`` unless set."""

    success: bool
    command: str
    data: Any = None
    errors: list[CliError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    exit_code: int = 0

    _timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not self.success and self.exit_code == 0:
            self.exit_code = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "exit_code": self.exit_code,
            "command": self.command,
            "data": self.data,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": self.warnings,
            "metadata": {"timestamp": self._timestamp.isoformat(), "version": "1.0"},
        }

    def to_json(self, compact: bool = False) -> str:
        return json.dumps(self.to_dict(), indent=None if compact else 2, default=str)

    def add_warning(self, message: str) -> CliResponse:
        self.warnings.append(message)
        return self

    @classmethod
    def success_response(
        cls, command: str, data: Any = None, warnings: list[str] | None = None
    ) -> CliResponse:
        return cls(success=True, command=command, data=data, warnings=warnings or [])

    @classmethod
    def error_response(
        cls,
        command: str,
        code: CliErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> CliResponse:
        return cls(
            success=False,
            command=command,
            errors=[CliError(code=code.value, message=message, details=details or {})],
        )

    @classmethod
    def from_error(cls, command: str, error: FlowError) -> CliResponse:
        """Envelope for a ``FlowError``; an ``AggregateError`` expands to one entry per error."""
        if isinstance(error, AggregateError):
            errors = [CliError.from_flow_error(e) for e in error.errors]
        else:
            errors = [CliError.from_flow_error(error)]
        return cls(success=False, command=command, errors=errors)


def format_response(response: CliResponse, output_format: str = "text") -> str:
    """Render ``response`` as JSON or, for text output, its errors or string data."""
    if output_format == "json":
        return response.to_json()

    if response.success:
        if response.data is None:
            return "Operation completed successfully."
        if isinstance(response.data, str):
            return response.data
        return json.dumps(response.data, indent=2, default=str)

    lines = []
    for error in response.errors:
        lines.append(f"Error [{error.code}]: {error.message}")
    return "\n".join(lines)


__all__ = ["CliError", "CliErrorCode", "CliResponse", "format_response"]
