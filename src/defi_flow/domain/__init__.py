"""Core domain models shared by sequencing, simulation and logic gating."""

from .assets import DEFAULT_REGISTRY, AssetInfo, AssetRegistry
from .comparison import ComparisonOperator, evaluate_comparison
from .models import (
    BalanceCondition,
    BridgeData,
    ContractCondition,
    CustomData,
    Edge,
    FlowGraph,
    LendAction,
    LendData,
    LogicData,
    LogicType,
    Node,
    NodeData,
    NodeKind,
    Position,
    SelectorData,
    StakeData,
    SwapData,
    TransferData,
    WalletData,
    as_graph,
)

__all__ = [
    "AssetInfo",
    "AssetRegistry",
    "BalanceCondition",
    "BridgeData",
    "ComparisonOperator",
    "ContractCondition",
    "CustomData",
    "DEFAULT_REGISTRY",
    "Edge",
    "FlowGraph",
    "LendAction",
    "LendData",
    "LogicData",
    "LogicType",
    "Node",
    "NodeData",
    "NodeKind",
    "Position",
    "SelectorData",
    "StakeData",
    "SwapData",
    "TransferData",
    "WalletData",
    "as_graph",
    "evaluate_comparison",
]
