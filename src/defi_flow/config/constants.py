"""
Centralized configuration constants.

These values can be overridden via environment variables where noted.
The sequencing and comparison constants are part of the ordering contract and
are intentionally not overridable.
"""

import os
from decimal import Decimal

# =============================================================================
# Sequencing
# =============================================================================

# Node kinds that never take part in execution ordering
NON_EXECUTABLE_KINDS: frozenset[str] = frozenset({"wallet", "selector"})

# Nodes whose vertical positions differ by at most this much are ordered left to right
TIE_BREAK_Y_THRESHOLD: float = 50.0

# =============================================================================
# Logic conditions
# =============================================================================

# Absolute tolerance for the approximate equality operators
APPROX_TOLERANCE: Decimal = Decimal("0.0001")

# Sender used for read-only contract inspection
ZERO_ADDRESS: str = "0x" + "0" * 64

# Only the first 8 little-endian bytes of a contract return value are decoded
RETURN_VALUE_BYTES: int = 8

# =============================================================================
# Chain RPC
# =============================================================================

DEFAULT_RPC_URL: str = os.getenv("DEFI_FLOW_DEFAULT_RPC_URL", "https://fullnode.mainnet.sui.io:443")

# Default HTTP request timeout in seconds
DEFAULT_HTTP_TIMEOUT: float = float(os.getenv("DEFI_FLOW_HTTP_TIMEOUT", "30"))

# =============================================================================
# Balance formatting
# =============================================================================

# Positive balances below this are rendered with six decimals instead of two
SMALL_BALANCE_THRESHOLD: Decimal = Decimal("0.01")
