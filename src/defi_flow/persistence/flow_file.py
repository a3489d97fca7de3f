"""Read and write flow documents in the editor's JSON export format.

A document looks like::

    {
      "name": "My Sequence #1",
      "nodes": [{"id": "swap-2", "type": "swap",
                 "position": {"x": 250, "y": 400},
                 "data": {"label": "Swap", "fromAsset": "SUI", ...}}],
      "edges": [{"id": "e1", "source": "wallet-1", "target": "swap-2"}]
    }

Node data uses the editor's camelCase keys. Keys the editor stores but the
analysis does not use (UI state, quotes for display) are ignored on load.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

from defi_flow.domain.comparison import ComparisonOperator
from defi_flow.domain.models import (
    DATA_TYPES,
    BalanceCondition,
    ContractCondition,
    Edge,
    FlowGraph,
    LogicData,
    LogicType,
    Node,
    NodeData,
    NodeKind,
    Position,
)
from defi_flow.errors import FlowFileError
from defi_flow.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="persistence")

DEFAULT_FLOW_NAME = "My Sequence #1"

# dataclass field -> document key, per node kind
_FIELD_KEYS: dict[NodeKind, dict[str, str]] = {
    NodeKind.WALLET: {"label": "label", "address": "address"},
    NodeKind.SELECTOR: {"label": "label"},
    NodeKind.TRANSFER: {
        "label": "label",
        "asset": "asset",
        "amount": "amount",
        "recipient_address": "recipientAddress",
    },
    NodeKind.SWAP: {
        "label": "label",
        "from_asset": "fromAsset",
        "to_asset": "toAsset",
        "amount": "amount",
        "estimated_amount_out": "estimatedAmountOut",
        "estimated_amount_out_symbol": "estimatedAmountOutSymbol",
    },
    NodeKind.LEND: {
        "label": "label",
        "action": "lendAction",
        "asset": "lendAsset",
        "amount": "lendAmount",
        "protocol": "lendProtocol",
    },
    NodeKind.STAKE: {
        "label": "label",
        "amount": "stakeAmount",
        "protocol": "stakeProtocol",
        "validator": "stakeValidator",
    },
    NodeKind.CUSTOM: {
        "label": "label",
        "package_id": "customPackageId",
        "module": "customModule",
        "function": "customFunction",
        "arguments": "customArguments",
        "type_arguments": "customTypeArguments",
    },
    NodeKind.BRIDGE: {
        "label": "label",
        "asset": "bridgeAsset",
        "output_asset": "bridgeOutputAsset",
        "chain": "bridgeChain",
        "amount": "bridgeAmount",
        "destination_address": "ethereumAddress",
        "protocol": "bridgeProtocol",
    },
}

_BALANCE_KEYS = {
    "address": "balanceAddress",
    "asset": "balanceAsset",
    "operator": "comparisonOperator",
    "compare_value": "compareValue",
}

_CONTRACT_KEYS = {
    "package_id": "contractPackageId",
    "module": "contractModule",
    "function": "contractFunction",
    "arguments": "contractArguments",
    "operator": "contractComparisonOperator",
    "compare_value": "contractCompareValue",
}


def _text(value: Any) -> str | None:
    """Document values may be numbers or strings; the model keeps strings."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


def _operator(value: Any, node_id: str) -> ComparisonOperator | None:
    if value is None or value == "":
        return None
    operator = ComparisonOperator.parse(str(value))
    if operator is None:
        raise FlowFileError(f"Node {node_id!r}: unknown comparison operator {value!r}")
    return operator


def _read_fields(raw: Mapping[str, Any], keys: Mapping[str, str]) -> dict[str, str | None]:
    return {name: _text(raw.get(key)) for name, key in keys.items()}


def _parse_logic(raw: Mapping[str, Any], node_id: str) -> LogicData:
    balance = _read_fields(raw, _BALANCE_KEYS)
    contract = _read_fields(raw, _CONTRACT_KEYS)
    return LogicData(
        label=_text(raw.get("label")) or "",
        logic_type=_text(raw.get("logicType")) or LogicType.BALANCE.value,
        balance=BalanceCondition(
            address=balance["address"],
            asset=balance["asset"],
            operator=_operator(raw.get("comparisonOperator"), node_id),
            compare_value=balance["compare_value"],
        ),
        contract=ContractCondition(
            package_id=contract["package_id"],
            module=contract["module"],
            function=contract["function"],
            arguments=contract["arguments"],
            operator=_operator(raw.get("contractComparisonOperator"), node_id),
            compare_value=contract["compare_value"],
        ),
    )


def _parse_data(kind: NodeKind, raw: Any, node_id: str) -> NodeData:
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise FlowFileError(f"Node {node_id!r}: data must be an object")
    if kind is NodeKind.LOGIC:
        return _parse_logic(raw, node_id)

    values = _read_fields(raw, _FIELD_KEYS[kind])
    values["label"] = values.get("label") or ""
    return DATA_TYPES[kind](**values)


def _parse_position(raw: Any, node_id: str) -> Position:
    if raw is None:
        return Position()
    try:
        return Position(x=float(raw.get("x", 0)), y=float(raw.get("y", 0)))
    except (AttributeError, TypeError, ValueError) as exc:
        raise FlowFileError(f"Node {node_id!r}: invalid position {raw!r}") from exc


def _parse_node(raw: Any, index: int) -> Node:
    if not isinstance(raw, Mapping):
        raise FlowFileError(f"Node #{index} must be an object")
    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id:
        raise FlowFileError(f"Node #{index} has no id")

    kind_name = raw.get("type") or (raw.get("data") or {}).get("type")
    try:
        kind = NodeKind(kind_name)
    except ValueError as exc:
        raise FlowFileError(f"Node {node_id!r}: unknown node type {kind_name!r}") from exc

    return Node(
        id=node_id,
        kind=kind,
        position=_parse_position(raw.get("position"), node_id),
        data=_parse_data(kind, raw.get("data"), node_id),
    )


def _parse_edge(raw: Any, index: int) -> Edge:
    if not isinstance(raw, Mapping):
        raise FlowFileError(f"Edge #{index} must be an object")
    source, target = raw.get("source"), raw.get("target")
    if not isinstance(source, str) or not isinstance(target, str):
        raise FlowFileError(f"Edge #{index} needs string source and target")
    edge_id = raw.get("id")
    return Edge(source=source, target=target, id=str(edge_id) if edge_id is not None else None)


def parse_flow(payload: Mapping[str, Any]) -> tuple[str, FlowGraph]:
    """Build a ``FlowGraph`` from a decoded flow document.

    Missing ``nodes`` or ``edges`` are treated as empty lists.
    """
    if not isinstance(payload, Mapping):
        raise FlowFileError("Flow document must be a JSON object")

    raw_nodes = payload.get("nodes") or []
    raw_edges = payload.get("edges") or []
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        raise FlowFileError("'nodes' and 'edges' must be lists")

    nodes = [_parse_node(raw, index) for index, raw in enumerate(raw_nodes)]
    edges = [_parse_edge(raw, index) for index, raw in enumerate(raw_edges)]
    name = _text(payload.get("name")) or DEFAULT_FLOW_NAME
    return name, FlowGraph.of(nodes, edges)


def load_flow(path: str | Path) -> tuple[str, FlowGraph]:
    """Read a flow document; the name falls back to the file name."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise FlowFileError(f"Invalid JSON in {path}: {e}", path=str(path)) from e
    except OSError as e:
        raise FlowFileError(f"Cannot read {path}: {e}", path=str(path)) from e

    if isinstance(payload, Mapping) and not payload.get("name"):
        payload = {**payload, "name": path.stem}
    try:
        name, graph = parse_flow(payload)
    except FlowFileError as e:
        raise e.add_context(path=str(path))

    logger.debug(
        f"Loaded flow {name!r} with {len(graph.nodes)} nodes",
        path=str(path),
        nodes=len(graph.nodes),
        edges=len(graph.edges),
    )
    return name, graph


def _dump_data(node: Node) -> dict[str, Any]:
    data = node.data
    if isinstance(data, LogicData):
        out: dict[str, Any] = {"label": data.label, "logicType": data.logic_type}
        for condition, keys in ((data.balance, _BALANCE_KEYS), (data.contract, _CONTRACT_KEYS)):
            for name, key in keys.items():
                value = getattr(condition, name)
                if isinstance(value, ComparisonOperator):
                    value = value.value
                if value is not None:
                    out[key] = value
        return out

    keys = _FIELD_KEYS[node.kind]
    out = {"type": node.kind.value} if node.kind is NodeKind.WALLET else {}
    for data_field in fields(data):
        value = getattr(data, data_field.name)
        if value is not None:
            out[keys[data_field.name]] = value
    return out


def dump_flow(graph: FlowGraph, name: str = DEFAULT_FLOW_NAME) -> dict[str, Any]:
    """Inverse of ``parse_flow``; ``None`` fields are omitted."""
    return {
        "name": name,
        "nodes": [
            {
                "id": node.id,
                "type": node.kind.value,
                "position": {"x": node.position.x, "y": node.position.y},
                "data": _dump_data(node),
            }
            for node in graph.nodes
        ],
        "edges": [
            {
                key: value
                for key, value in (("id", edge.id), ("source", edge.source), ("target", edge.target))
                if value is not None
            }
            for edge in graph.edges
        ],
    }


def save_flow(graph: FlowGraph, path: str | Path, name: str = DEFAULT_FLOW_NAME) -> Path:
    """Write ``graph`` atomically via a temp file in the target directory."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(dump_flow(graph, name), indent=2)

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(temp_path, path)
    except OSError as e:
        try:
            os.unlink(temp_path)
        except OSError as cleanup_error:
            logger.debug(f"Failed to cleanup temp file {temp_path}: {cleanup_error}")
        raise FlowFileError(f"Failed to write {path}: {e}", path=str(path)) from e

    logger.info(f"Saved flow {name!r} to {path}", path=str(path), nodes=len(graph.nodes))
    return path


__all__ = ["DEFAULT_FLOW_NAME", "dump_flow", "load_flow", "parse_flow", "save_flow"]
