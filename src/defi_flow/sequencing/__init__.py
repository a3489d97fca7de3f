"""Execution ordering and downstream reachability over a flow graph."""

from .reachability import mark_downstream, reachable_from
from .sequencer import ExecutionSequence, compute_sequence, order_by_position

__all__ = [
    "ExecutionSequence",
    "compute_sequence",
    "mark_downstream",
    "order_by_position",
    "reachable_from",
]
