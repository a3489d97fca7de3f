"""Configuration constants for the ``defi_flow`` package."""

from .constants import (
    APPROX_TOLERANCE,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_RPC_URL,
    NON_EXECUTABLE_KINDS,
    RETURN_VALUE_BYTES,
    SMALL_BALANCE_THRESHOLD,
    TIE_BREAK_Y_THRESHOLD,
    ZERO_ADDRESS,
)

__all__ = [
    "APPROX_TOLERANCE",
    "DEFAULT_HTTP_TIMEOUT",
    "DEFAULT_RPC_URL",
    "NON_EXECUTABLE_KINDS",
    "RETURN_VALUE_BYTES",
    "SMALL_BALANCE_THRESHOLD",
    "TIE_BREAK_Y_THRESHOLD",
    "ZERO_ADDRESS",
]
