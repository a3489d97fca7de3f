"""Deterministic execution ordering for a flow graph.

The order is a Kahn topological sort over the executable nodes. Whenever
several nodes become ready together they are ordered by canvas position: top
to bottom, and left to right for nodes whose vertical positions lie within
``TIE_BREAK_Y_THRESHOLD`` of each other.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from functools import cmp_to_key

from defi_flow.config.constants import TIE_BREAK_Y_THRESHOLD
from defi_flow.domain.models import Edge, FlowGraph, Node, as_graph
from defi_flow.errors import CycleDetectedError


@dataclass(frozen=True)
class ExecutionSequence:
    """Linear execution order plus the 1-based rank of every sequenced node.

    ``excluded`` lists executable nodes that never became ready because they
    sit on, or downstream of, a dependency cycle. They are left out of the
    order rather than guessed into it.
    """

    nodes: tuple[Node, ...] = ()
    rank_of: Mapping[str, int] = field(default_factory=dict)
    excluded: tuple[str, ...] = ()

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __bool__(self) -> bool:
        return bool(self.nodes)

    def rank(self, node_id: str) -> int | None:
        return self.rank_of.get(node_id)

    def node_at(self, rank: int) -> Node:
        """Node holding ``rank`` (1-based)."""
        if rank < 1 or rank > len(self.nodes):
            raise IndexError(f"rank {rank} outside 1..{len(self.nodes)}")
        return self.nodes[rank - 1]

    def ranked(self) -> Iterator[tuple[int, Node]]:
        return enumerate(self.nodes, start=1)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(node.id for node in self.nodes)

    @property
    def has_cycle(self) -> bool:
        return bool(self.excluded)


def _compare_positions(a: Node, b: Node) -> int:
    dy = a.position.y - b.position.y
    if abs(dy) > TIE_BREAK_Y_THRESHOLD:
        return -1 if dy < 0 else 1
    dx = a.position.x - b.position.x
    if dx == 0:
        return 0
    return -1 if dx < 0 else 1


_position_key = cmp_to_key(_compare_positions)


def order_by_position(nodes: Iterable[Node]) -> list[Node]:
    """Stable sort by the canvas tie-break rule."""
    return sorted(nodes, key=_position_key)


def compute_sequence(
    nodes: FlowGraph | Iterable[Node],
    edges: Iterable[Edge] | None = None,
    *,
    strict: bool = False,
) -> ExecutionSequence:
    """Compute the execution order of a flow snapshot.

    Args:
        nodes: A ``FlowGraph`` or the raw node list.
        edges: Edge list; optional when ``nodes`` is already a ``FlowGraph``.
        strict: Raise ``CycleDetectedError`` instead of returning a partial
            order when executable nodes form a cycle.

    Returns:
        The ordered steps and their ranks. Empty when the flow has no wallet.
    """
    graph = as_graph(nodes, edges)
    if not graph.has_wallet():
        return ExecutionSequence()

    executable: dict[str, Node] = {}
    for node in graph.nodes:
        if node.is_executable and node.id not in executable:
            executable[node.id] = node

    adjacency: dict[str, list[str]] = {node_id: [] for node_id in executable}
    in_degree: dict[str, int] = {node_id: 0 for node_id in executable}

    for edge in graph.edges:
        if edge.target not in executable:
            continue
        # Wallet, selector and unknown sources add no dependency
        if edge.source not in executable:
            continue
        adjacency[edge.source].append(edge.target)
        in_degree[edge.target] += 1

    ready = deque(
        order_by_position(executable[node_id] for node_id, deg in in_degree.items() if deg == 0)
    )

    ordered: list[Node] = []
    while ready:
        node = ready.popleft()
        ordered.append(node)

        newly_ready: list[Node] = []
        for successor in adjacency[node.id]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                newly_ready.append(executable[successor])
        ready.extend(order_by_position(newly_ready))

    rank_of = {node.id: rank for rank, node in enumerate(ordered, start=1)}
    excluded = tuple(
        node.id for node in order_by_position(executable.values()) if node.id not in rank_of
    )

    if excluded and strict:
        raise CycleDetectedError(
            "Executable steps form a dependency cycle: " + ", ".join(excluded),
            node_ids=excluded,
        )

    return ExecutionSequence(nodes=tuple(ordered), rank_of=rank_of, excluded=excluded)


__all__ = ["ExecutionSequence", "compute_sequence", "order_by_position"]
