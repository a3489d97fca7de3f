"""
defi_flow - analysis core for composed DeFi flows on Sui.

Orders the steps of a flow graph, projects the balances each step will see,
and evaluates logic gates against chain state to decide which steps run.
"""

from __future__ import annotations

from defi_flow.domain import Edge, FlowGraph, Node, NodeKind, Position
from defi_flow.errors import FlowError
from defi_flow.sequencing import ExecutionSequence, compute_sequence, mark_downstream
from defi_flow.simulation import TokenBalance, project_balances

__version__ = "0.1.0"

__all__ = [
    "Edge",
    "ExecutionSequence",
    "FlowError",
    "FlowGraph",
    "Node",
    "NodeKind",
    "Position",
    "TokenBalance",
    "__version__",
    "compute_sequence",
    "mark_downstream",
    "project_balances",
]
