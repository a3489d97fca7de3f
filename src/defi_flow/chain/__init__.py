"""Chain-read boundary: reader protocol, BCS encoding and the Sui RPC reader."""

from .protocols import ChainReader, InspectResult, MoveArgument, ObjectArgument, U64Argument
from .sui_rpc import SuiRpcReader, parse_inspect_result

__all__ = [
    "ChainReader",
    "InspectResult",
    "MoveArgument",
    "ObjectArgument",
    "SuiRpcReader",
    "U64Argument",
    "parse_inspect_result",
]
