from __future__ import annotations

import json

import pytest

from defi_flow.domain import ComparisonOperator, FlowGraph, NodeKind, Position
from defi_flow.errors import FlowFileError
from defi_flow.persistence import dump_flow, load_flow, parse_flow, save_flow
from tests.factories import balance_gate, bridge, edges, lend, swap, wallet

EDITOR_EXPORT = {
    "name": "Yield loop",
    "nodes": [
        {
            "id": "wallet-1",
            "type": "wallet",
            "position": {"x": 250, "y": 250},
            "data": {"label": "Your Wallet", "type": "wallet"},
            "measured": {"width": 200, "height": 80},
        },
        {
            "id": "swap-2",
            "type": "swap",
            "position": {"x": 250, "y": 400},
            "data": {
                "label": "Swap",
                "fromAsset": "SUI",
                "toAsset": "USDC",
                "amount": 2,
                "estimatedAmountOut": "7.1",
                "quoteLoading": False,
            },
        },
        {
            "id": "logic-3",
            "type": "logic",
            "position": {"x": 250, "y": 550},
            "data": {
                "label": "Check",
                "logicType": "balance",
                "balanceAddress": "0xabc",
                "balanceAsset": "USDC",
                "comparisonOperator": "gte",
                "compareValue": "5",
            },
        },
        {
            "id": "lend-4",
            "type": "lend",
            "position": {"x": 250, "y": 700},
            "data": {"lendAction": "deposit", "lendAsset": "USDC", "lendAmount": "5"},
        },
    ],
    "edges": [
        {"id": "e1", "source": "wallet-1", "target": "swap-2", "animated": True},
        {"id": "e2", "source": "swap-2", "target": "logic-3"},
        {"source": "logic-3", "target": "lend-4"},
    ],
}


def test_parse_editor_export() -> None:
    name, graph = parse_flow(EDITOR_EXPORT)

    assert name == "Yield loop"
    assert [node.kind for node in graph.nodes] == [
        NodeKind.WALLET,
        NodeKind.SWAP,
        NodeKind.LOGIC,
        NodeKind.LEND,
    ]

    swap_node = graph.node("swap-2")
    assert swap_node.position == Position(250, 400)
    assert swap_node.data.amount == "2"
    assert swap_node.data.estimated_amount_out == "7.1"
    assert swap_node.data.to_asset == "USDC"

    gate = graph.node("logic-3").data
    assert gate.condition.operator is ComparisonOperator.GTE
    assert gate.condition.asset == "USDC"

    assert graph.node("lend-4").data.amount == "5"
    assert graph.node("lend-4").data.label == ""
    assert [(e.source, e.target, e.id) for e in graph.edges] == [
        ("wallet-1", "swap-2", "e1"),
        ("swap-2", "logic-3", "e2"),
        ("logic-3", "lend-4", None),
    ]


def test_missing_sections_default_to_empty() -> None:
    name, graph = parse_flow({})

    assert name == "My Sequence #1"
    assert graph == FlowGraph()


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ([], "must be a JSON object"),
        ({"nodes": {"a": {}}}, "must be lists"),
        ({"nodes": ["x"]}, "Node #0 must be an object"),
        ({"nodes": [{"type": "swap"}]}, "Node #0 has no id"),
        ({"nodes": [{"id": "a", "type": "teleport"}]}, "unknown node type 'teleport'"),
        ({"nodes": [{"id": "a", "type": "swap", "data": []}]}, "data must be an object"),
        ({"nodes": [{"id": "a", "type": "swap", "position": {"x": "left"}}]}, "invalid position"),
        (
            {"nodes": [{"id": "a", "type": "logic", "data": {"comparisonOperator": "~"}}]},
            "unknown comparison operator",
        ),
        ({"edges": [{"source": "a"}]}, "Edge #0 needs string source and target"),
    ],
)
def test_malformed_documents(payload, message) -> None:
    with pytest.raises(FlowFileError, match=message):
        parse_flow(payload)


def test_save_and_load_preserve_the_graph(tmp_path) -> None:
    graph = FlowGraph.of(
        [
            wallet(),
            swap("s", 10, 20, amount="1.5", out="3", out_symbol="USDC"),
            balance_gate("g", 10, 120, operator=ComparisonOperator.LT),
            lend("l", 10, 220, action="borrow", protocol="navi"),
            bridge("b", 10, 320),
        ],
        edges(("wallet-1", "s"), ("s", "g"), ("g", "l"), ("l", "b")),
    )
    path = tmp_path / "flows" / "loop.json"

    save_flow(graph, path, "Loop")
    name, loaded = load_flow(path)

    assert name == "Loop"
    assert loaded == graph
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["nodes"][1]["data"]["estimatedAmountOutSymbol"] == "USDC"
    assert document["nodes"][2]["data"]["comparisonOperator"] == "lt"
    assert document["nodes"][4]["data"]["ethereumAddress"].startswith("0x")
    assert not list(path.parent.glob("*.tmp"))


def test_dump_omits_unset_fields() -> None:
    document = dump_flow(FlowGraph.of([swap("s", amount=None)], []))

    assert "amount" not in document["nodes"][0]["data"]
    assert document["edges"] == []


def test_load_uses_file_name_when_unnamed(tmp_path) -> None:
    path = tmp_path / "Weekend rebalance.json"
    path.write_text(json.dumps({"nodes": [], "edges": []}), encoding="utf-8")

    name, _ = load_flow(path)

    assert name == "Weekend rebalance"


def test_load_reports_invalid_json(tmp_path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(FlowFileError, match="Invalid JSON") as exc_info:
        load_flow(path)

    assert exc_info.value.context["path"] == str(path)


def test_load_reports_missing_file(tmp_path) -> None:
    with pytest.raises(FlowFileError, match="Cannot read"):
        load_flow(tmp_path / "missing.json")


def test_load_adds_path_to_parse_errors(tmp_path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"nodes": [{"id": "a", "type": "warp"}]}), encoding="utf-8")

    with pytest.raises(FlowFileError) as exc_info:
        load_flow(path)

    assert exc_info.value.context["path"] == str(path)
