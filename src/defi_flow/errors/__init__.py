"""
Centralized error handling for defi_flow

Every error raised while validating, gating or simulating a flow derives from
``FlowError``. Errors that originate from a particular step carry its label
("Step N") both in the message and in ``context["step"]``.
"""

import logging
import sys
import traceback
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:  # pragma: no cover
    from defi_flow.utilities.logging_patterns import StructuredLogger

_logger: Optional["StructuredLogger"] = None


def _get_logger() -> "StructuredLogger":
    global _logger
    if _logger is None:
        from defi_flow.utilities.logging_patterns import get_logger as _get_structured_logger

        _logger = _get_structured_logger(__name__, component="errors")
    return _logger


def _capture_traceback() -> str:
    """Return the active traceback or, if none, a snapshot of the current stack."""

    exc_type, exc_value, exc_tb = sys.exc_info()
    if exc_type is not None and exc_tb is not None:
        return "".join(traceback.format_exception(exc_type, exc_value, exc_tb))

    stack = traceback.format_stack()
    if not stack:
        return ""
    # Drop the last frame so the helper itself does not appear in the stack trace
    return "".join(stack[:-1])


def step_label(rank: int) -> str:
    """Human readable label for the step at ``rank``."""
    return f"Step {rank}"


class FlowError(Exception):
    """Base exception class for all flow-related errors"""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        recoverable: bool = True,
        original_error: Exception | None = None,
        step: str | None = None,
    ) -> None:
        if step and not message.startswith(f"{step}:"):
            message = f"{step}: {message}"
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.recoverable = recoverable
        self.timestamp = datetime.now()
        self.traceback = _capture_traceback()
        self.original_error = original_error
        self.step = step
        if step:
            self.context.setdefault("step", step)

    def add_context(self, **kwargs: Any) -> "FlowError":
        """Add additional context to the error"""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback,
        }


class ConfigurationError(FlowError):
    """Raised when there are configuration issues"""

    def __init__(self, message: str, config_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, error_code="CONFIG_ERROR", recoverable=False, **kwargs)
        if config_key:
            self.add_context(config_key=config_key)


class InvalidArgumentsError(FlowError):
    """Raised when a logic or custom step carries malformed arguments"""

    def __init__(self, message: str, raw_arguments: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, error_code="INVALID_ARGUMENTS", recoverable=False, **kwargs)
        if raw_arguments is not None:
            self.add_context(raw_arguments=raw_arguments)


class ExternalReadFailedError(FlowError):
    """Raised when a chain read or network call fails"""

    def __init__(self, message: str, method: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "EXTERNAL_READ_FAILED")
        super().__init__(message, **kwargs)
        if method:
            self.add_context(method=method)


class ContractCallFailedError(ExternalReadFailedError):
    """Raised when a read-only contract call reports an execution error"""

    def __init__(self, message: str, target: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, error_code="CONTRACT_CALL_FAILED", **kwargs)
        if target:
            self.add_context(target=target)


class NoReturnValueError(FlowError):
    """Raised when a well-formed contract call produced no usable return value"""

    def __init__(self, message: str, target: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, error_code="NO_RETURN_VALUE", **kwargs)
        if target:
            self.add_context(target=target)


class MissingAssetError(FlowError):
    """Raised when an asset symbol is not present in the asset registry"""

    def __init__(self, message: str, symbol: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, error_code="MISSING_ASSET", recoverable=False, **kwargs)
        if symbol:
            self.add_context(symbol=symbol)


class CycleDetectedError(FlowError):
    """Raised in strict mode when executable nodes form a dependency cycle"""

    def __init__(self, message: str, node_ids: tuple[str, ...] = (), **kwargs: Any) -> None:
        super().__init__(message, error_code="CYCLE_DETECTED", recoverable=False, **kwargs)
        self.node_ids = node_ids
        self.add_context(node_ids=list(node_ids))


class StepValidationError(FlowError):
    """Raised when a step's declared fields fail pre-flight validation"""

    def __init__(
        self, message: str, field: str | None = None, value: Any = None, **kwargs: Any
    ) -> None:
        super().__init__(message, error_code="STEP_VALIDATION", recoverable=False, **kwargs)
        if field:
            self.add_context(field=field, value=value)


class FlowFileError(FlowError):
    """Raised when a flow document cannot be read or parsed"""

    def __init__(self, message: str, path: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, error_code="FLOW_FILE_ERROR", recoverable=False, **kwargs)
        if path:
            self.add_context(path=path)


# Error aggregation for multiple errors
class AggregateError(FlowError):
    """Container for multiple errors"""

    def __init__(self, message: str, errors: list[FlowError], **kwargs: Any) -> None:
        super().__init__(message, error_code="AGGREGATE_ERROR", **kwargs)
        self.errors = errors
        self.add_context(error_count=len(errors))

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["errors"] = [e.to_dict() for e in self.errors]
        return result


# Helper functions
def handle_error(error: Exception, context: dict[str, Any] | None = None) -> FlowError:
    """Convert any exception to a FlowError with context"""
    if isinstance(error, FlowError):
        if context:
            error.add_context(**context)
        return error

    wrapped = FlowError(
        message=str(error),
        error_code=error.__class__.__name__,
        context=context or {},
        original_error=error,
    )
    wrapped.traceback = _capture_traceback()
    return wrapped


def log_error(error: FlowError, level: int = logging.ERROR) -> None:
    """Log an error with full context"""
    _get_logger().log(level, f"{error.error_code}: {error.message}", error_data=error.to_dict())


__all__ = [
    "FlowError",
    "ConfigurationError",
    "InvalidArgumentsError",
    "ExternalReadFailedError",
    "ContractCallFailedError",
    "NoReturnValueError",
    "MissingAssetError",
    "CycleDetectedError",
    "StepValidationError",
    "FlowFileError",
    "AggregateError",
    "handle_error",
    "log_error",
    "step_label",
]
