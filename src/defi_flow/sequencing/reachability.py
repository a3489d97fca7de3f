"""Downstream reachability used to skip steps behind a failed logic gate."""

from __future__ import annotations

from collections.abc import Iterable

from defi_flow.domain.models import Edge, FlowGraph
from defi_flow.sequencing.sequencer import ExecutionSequence


def _successor_map(edges: FlowGraph | Iterable[Edge]) -> dict[str, list[str]]:
    if isinstance(edges, FlowGraph):
        edges = edges.edges
    successors: dict[str, list[str]] = {}
    for edge in edges:
        successors.setdefault(edge.source, []).append(edge.target)
    return successors


def reachable_from(start_node_id: str, edges: FlowGraph | Iterable[Edge]) -> set[str]:
    """Ids reachable from ``start_node_id`` through one or more edges.

    The start node itself is only included when a cycle leads back to it.
    """
    successors = _successor_map(edges)
    visited: set[str] = set()
    stack = list(reversed(successors.get(start_node_id, [])))
    while stack:
        node_id = stack.pop()
        if node_id in visited:
            continue
        visited.add(node_id)
        stack.extend(reversed(successors.get(node_id, [])))
    return visited


def mark_downstream(
    start_node_id: str,
    start_rank: int,
    sequence: ExecutionSequence,
    edges: FlowGraph | Iterable[Edge],
) -> frozenset[int]:
    """Ranks to skip because they are reachable from a failed gate.

    Only ranks strictly after ``start_rank`` are returned, so an edge looping
    back to an earlier step never un-executes it. Nodes that are not part of
    the sequence (wallet, selector, stale ids) are traversed but never marked.
    """
    skip: set[int] = set()
    for node_id in reachable_from(start_node_id, edges):
        rank = sequence.rank(node_id)
        if rank is not None and rank > start_rank:
            skip.add(rank)
    return frozenset(skip)


__all__ = ["mark_downstream", "reachable_from"]
