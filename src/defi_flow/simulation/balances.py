"""Effective balance projection.

Replays the declared effect of every step that feeds into a target node, in
execution order, on top of the wallet's base balances. Nothing here touches the
network: amounts come from the node data as typed in the editor, and swap
outputs come from the quote the editor stored on the swap node.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from defi_flow.domain.models import (
    Edge,
    FlowGraph,
    LendAction,
    LendData,
    Node,
    NodeKind,
    SwapData,
    TransferData,
    as_graph,
)
from defi_flow.sequencing.sequencer import ExecutionSequence, compute_sequence
from defi_flow.utilities.parsing import format_balance, parse_decimal

_ZERO = Decimal("0")

_DEBIT_ACTIONS = frozenset({LendAction.DEPOSIT.value, LendAction.REPAY.value})
_CREDIT_ACTIONS = frozenset({LendAction.WITHDRAW.value, LendAction.BORROW.value})


@dataclass(frozen=True, slots=True)
class TokenBalance:
    """Asset symbol paired with a decimal-string balance."""

    symbol: str
    balance: str


def collect_predecessors(
    nodes: FlowGraph | Iterable[Node],
    edges: Iterable[Edge] | None,
    target_node_id: str,
) -> list[Node]:
    """Nodes whose effects are in force when ``target_node_id`` runs.

    Walks backwards from the edges entering the target. Every node reached that
    has at least one incoming edge is collected. Wallet and selector nodes are
    transparent: the walk continues forward along their outgoing edges, unless
    one of those edges leads straight to the target. Results are in discovery
    order; callers sort them by rank.
    """
    graph = as_graph(nodes, edges)
    if graph.node(target_node_id) is None:
        return []

    visited: set[str] = {target_node_id}
    collected: list[Node] = []
    stack = list(reversed(graph.predecessors(target_node_id)))

    while stack:
        node_id = stack.pop()
        if node_id in visited:
            continue
        visited.add(node_id)

        node = graph.node(node_id)
        if node is None:
            continue

        if not node.is_executable:
            onward = graph.successors(node_id)
            # A wallet feeding the target directly ends the walk there
            if target_node_id not in onward:
                stack.extend(reversed(onward))
            continue

        sources = graph.predecessors(node_id)
        if sources:
            collected.append(node)
            stack.extend(reversed(sources))

    return collected


class _BalanceBook:
    """Running per-asset amounts keyed by the base-balance casing."""

    def __init__(self, base_balances: Sequence[TokenBalance]) -> None:
        self.amounts: dict[str, Decimal] = {}
        self._canonical: dict[str, str] = {}
        for token in base_balances:
            self.amounts[token.symbol] = parse_decimal(token.balance) or _ZERO
            self._canonical.setdefault(token.symbol.upper(), token.symbol)

    def resolve(self, symbol: str) -> str:
        return self._canonical.get(symbol.upper(), symbol)

    def debit(self, symbol: str, amount: Decimal) -> None:
        key = self.resolve(symbol)
        remaining = self.amounts.get(key, _ZERO) - amount
        self.amounts[key] = remaining if remaining > 0 else _ZERO

    def credit(self, symbol: str, amount: Decimal) -> None:
        key = self.resolve(symbol)
        self.amounts[key] = self.amounts.get(key, _ZERO) + amount


def _apply_swap(book: _BalanceBook, data: SwapData) -> None:
    destination = data.estimated_amount_out_symbol or data.to_asset
    amount_text = (data.amount or "").strip()
    if not (data.from_asset and destination and amount_text):
        return
    if data.estimated_amount_out is None:
        return
    amount_in = parse_decimal(amount_text)
    if amount_in is not None:
        book.debit(data.from_asset, amount_in)
    amount_out = parse_decimal(data.estimated_amount_out)
    if amount_out is not None:
        book.credit(destination, amount_out)


def _apply_transfer(book: _BalanceBook, data: TransferData) -> None:
    if not data.asset:
        return
    amount = parse_decimal(data.amount)
    if amount is not None:
        book.debit(data.asset, amount)


def _apply_lend(book: _BalanceBook, data: LendData) -> None:
    if not data.asset:
        return
    amount = parse_decimal(data.amount)
    if amount is None:
        return
    action = data.effective_action
    if action in _DEBIT_ACTIONS:
        book.debit(data.asset, amount)
    elif action in _CREDIT_ACTIONS:
        book.credit(data.asset, amount)


def simulate_effects(
    steps: Iterable[Node], base_balances: Sequence[TokenBalance]
) -> dict[str, Decimal]:
    """Apply each step's declared balance delta in order.

    The returned mapping may contain symbols absent from ``base_balances``
    (swap or borrow proceeds into a new asset).
    """
    book = _BalanceBook(base_balances)
    for node in steps:
        if node.kind is NodeKind.SWAP:
            _apply_swap(book, node.data)
        elif node.kind is NodeKind.TRANSFER:
            _apply_transfer(book, node.data)
        elif node.kind is NodeKind.LEND:
            _apply_lend(book, node.data)
        elif node.kind in (
            NodeKind.STAKE,
            NodeKind.CUSTOM,
            NodeKind.LOGIC,
            NodeKind.BRIDGE,
            NodeKind.WALLET,
            NodeKind.SELECTOR,
        ):
            continue
        else:  # pragma: no cover - NodeKind is closed
            raise ValueError(f"Unhandled node kind: {node.kind!r}")
    return book.amounts


def project_balances(
    nodes: FlowGraph | Iterable[Node],
    edges: Iterable[Edge] | None,
    target_node_id: str,
    base_balances: Sequence[TokenBalance],
    rank_of: ExecutionSequence | Mapping[str, int] | None = None,
) -> list[TokenBalance]:
    """Balances available to ``target_node_id`` after all of its predecessors.

    Args:
        nodes: A ``FlowGraph`` or the raw node list.
        edges: Edge list; may be ``None`` when ``nodes`` is a ``FlowGraph``.
        target_node_id: Step whose "balance before" is projected.
        base_balances: Wallet balances; fixes the output symbols and their order.
        rank_of: Execution ranks. Computed from the graph when omitted.

    Returns:
        One formatted ``TokenBalance`` per base balance, in the same order.
    """
    graph = as_graph(nodes, edges)
    if rank_of is None:
        rank_of = compute_sequence(graph)
    ranks = rank_of.rank_of if isinstance(rank_of, ExecutionSequence) else rank_of

    predecessors = collect_predecessors(graph, None, target_node_id)
    predecessors.sort(key=lambda node: ranks.get(node.id, 0))

    projected = simulate_effects(predecessors, base_balances)
    return [
        TokenBalance(token.symbol, format_balance(projected.get(token.symbol, _ZERO)))
        for token in base_balances
    ]


__all__ = [
    "TokenBalance",
    "collect_predecessors",
    "project_balances",
    "simulate_effects",
]
