"""Immutable graph model for a composed DeFi flow.

A flow is a snapshot of the editing surface: nodes carrying a kind, a canvas
position and a kind-specific data record, plus directed edges between node ids.
Nothing in this module mutates a node; derived views (sequence, skip set,
balance projection) are recomputed from a fresh snapshot on every change.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from defi_flow.config.constants import NON_EXECUTABLE_KINDS
from defi_flow.domain.comparison import ComparisonOperator


class NodeKind(str, Enum):
    """Closed set of node kinds understood by the flow editor."""

    WALLET = "wallet"
    SELECTOR = "selector"
    TRANSFER = "transfer"
    SWAP = "swap"
    LEND = "lend"
    STAKE = "stake"
    LOGIC = "logic"
    CUSTOM = "custom"
    BRIDGE = "bridge"

    @property
    def is_executable(self) -> bool:
        return self.value not in NON_EXECUTABLE_KINDS


class LendAction(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    BORROW = "borrow"
    REPAY = "repay"


class LogicType(str, Enum):
    BALANCE = "balance"
    CONTRACT = "contract"


@dataclass(frozen=True, slots=True)
class Position:
    """Canvas coordinates; only used to break ordering ties."""

    x: float = 0.0
    y: float = 0.0


# ---------------------------------------------------------------------------
# Kind-specific data records
# ---------------------------------------------------------------------------
# Amounts stay as the strings the user typed; they are parsed where used so a
# half-edited field never prevents the rest of the flow from being analysed.


@dataclass(frozen=True, slots=True)
class WalletData:
    label: str = ""
    address: str | None = None


@dataclass(frozen=True, slots=True)
class SelectorData:
    label: str = ""


@dataclass(frozen=True, slots=True)
class TransferData:
    label: str = ""
    asset: str | None = None
    amount: str | None = None
    recipient_address: str | None = None


@dataclass(frozen=True, slots=True)
class SwapData:
    label: str = ""
    from_asset: str | None = None
    to_asset: str | None = None
    amount: str | None = None
    # Quote captured by the editor: output amount and the symbol it is denominated in
    estimated_amount_out: str | None = None
    estimated_amount_out_symbol: str | None = None


@dataclass(frozen=True, slots=True)
class LendData:
    label: str = ""
    action: str | None = None  # one of LendAction; kept raw so validation can report it
    asset: str | None = None
    amount: str | None = None
    protocol: str | None = None

    @property
    def effective_action(self) -> str:
        return self.action or LendAction.DEPOSIT.value


@dataclass(frozen=True, slots=True)
class StakeData:
    label: str = ""
    amount: str | None = None
    protocol: str | None = None
    validator: str | None = None


@dataclass(frozen=True, slots=True)
class BalanceCondition:
    """Compare an address's balance of ``asset`` against ``compare_value``."""

    address: str | None = None
    asset: str | None = None
    operator: ComparisonOperator | None = None
    compare_value: str | None = None


@dataclass(frozen=True, slots=True)
class ContractCondition:
    """Compare the u64 returned by a read-only move call against ``compare_value``."""

    package_id: str | None = None
    module: str | None = None
    function: str | None = None
    arguments: str | None = None  # JSON array as typed by the user
    operator: ComparisonOperator | None = None
    compare_value: str | None = None

    @property
    def target(self) -> str:
        return f"{self.package_id}::{self.module}::{self.function}"


@dataclass(frozen=True, slots=True)
class LogicData:
    label: str = ""
    logic_type: str = LogicType.BALANCE.value
    balance: BalanceCondition = field(default_factory=BalanceCondition)
    contract: ContractCondition = field(default_factory=ContractCondition)

    @property
    def condition(self) -> BalanceCondition | ContractCondition | None:
        """Active condition for ``logic_type``; ``None`` for an unknown type."""
        if self.logic_type == LogicType.BALANCE.value:
            return self.balance
        if self.logic_type == LogicType.CONTRACT.value:
            return self.contract
        return None


@dataclass(frozen=True, slots=True)
class CustomData:
    label: str = ""
    package_id: str | None = None
    module: str | None = None
    function: str | None = None
    arguments: str | None = None
    type_arguments: str | None = None


@dataclass(frozen=True, slots=True)
class BridgeData:
    label: str = ""
    asset: str | None = None
    output_asset: str | None = None
    chain: str | None = None
    amount: str | None = None
    destination_address: str | None = None
    protocol: str | None = None


NodeData = Union[
    WalletData,
    SelectorData,
    TransferData,
    SwapData,
    LendData,
    StakeData,
    LogicData,
    CustomData,
    BridgeData,
]

DATA_TYPES: dict[NodeKind, type] = {
    NodeKind.WALLET: WalletData,
    NodeKind.SELECTOR: SelectorData,
    NodeKind.TRANSFER: TransferData,
    NodeKind.SWAP: SwapData,
    NodeKind.LEND: LendData,
    NodeKind.STAKE: StakeData,
    NodeKind.LOGIC: LogicData,
    NodeKind.CUSTOM: CustomData,
    NodeKind.BRIDGE: BridgeData,
}


@dataclass(frozen=True, slots=True)
class Node:
    """Single step (or wallet/selector anchor) on the canvas."""

    id: str
    kind: NodeKind
    position: Position = Position()
    data: NodeData | None = None

    def __post_init__(self) -> None:
        expected = DATA_TYPES[self.kind]
        if self.data is None:
            object.__setattr__(self, "data", expected())
        elif not isinstance(self.data, expected):
            raise TypeError(
                f"Node {self.id!r} of kind {self.kind.value!r} requires "
                f"{expected.__name__}, got {type(self.data).__name__}"
            )

    @property
    def is_executable(self) -> bool:
        return self.kind.is_executable

    @property
    def label(self) -> str:
        return getattr(self.data, "label", "") or self.id


@dataclass(frozen=True, slots=True)
class Edge:
    """Directed dependency ``source -> target``."""

    source: str
    target: str
    id: str | None = None


@dataclass(frozen=True)
class FlowGraph:
    """Read-only view over a node/edge snapshot with id-based lookups.

    Edges that reference unknown node ids are kept (the editor can briefly hold
    stale edges) but resolve to no node on lookup.
    """

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    _by_id: dict[str, Node] = field(init=False, repr=False, compare=False)
    _outgoing: dict[str, tuple[str, ...]] = field(init=False, repr=False, compare=False)
    _incoming: dict[str, tuple[str, ...]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_id: dict[str, Node] = {}
        for node in self.nodes:
            # First node wins for duplicated ids
            by_id.setdefault(node.id, node)

        outgoing: dict[str, list[str]] = {}
        incoming: dict[str, list[str]] = {}
        for edge in self.edges:
            outgoing.setdefault(edge.source, []).append(edge.target)
            incoming.setdefault(edge.target, []).append(edge.source)

        object.__setattr__(self, "_by_id", by_id)
        object.__setattr__(self, "_outgoing", {k: tuple(v) for k, v in outgoing.items()})
        object.__setattr__(self, "_incoming", {k: tuple(v) for k, v in incoming.items()})

    @classmethod
    def of(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> FlowGraph:
        return cls(nodes=tuple(nodes), edges=tuple(edges))

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, node_id: str) -> Node | None:
        return self._by_id.get(node_id)

    def successors(self, node_id: str) -> tuple[str, ...]:
        """Target ids of edges leaving ``node_id``, in edge order (duplicates kept)."""
        return self._outgoing.get(node_id, ())

    def predecessors(self, node_id: str) -> tuple[str, ...]:
        """Source ids of edges entering ``node_id``, in edge order (duplicates kept)."""
        return self._incoming.get(node_id, ())

    def has_wallet(self) -> bool:
        return any(node.kind is NodeKind.WALLET for node in self.nodes)

    def executable_nodes(self) -> tuple[Node, ...]:
        return tuple(node for node in self.nodes if node.is_executable)


def as_graph(nodes: FlowGraph | Iterable[Node], edges: Iterable[Edge] | None = None) -> FlowGraph:
    """Accept either a prepared ``FlowGraph`` or raw node/edge iterables."""
    if isinstance(nodes, FlowGraph):
        if edges is None:
            return nodes
        return FlowGraph.of(nodes.nodes, edges)
    return FlowGraph.of(nodes, edges or ())


__all__ = [
    "BalanceCondition",
    "BridgeData",
    "ContractCondition",
    "CustomData",
    "DATA_TYPES",
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
]
