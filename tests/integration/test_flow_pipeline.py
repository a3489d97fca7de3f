"""End to end: editor export -> order -> validation -> balances -> dry-run plan."""

from __future__ import annotations

import json

import pytest

from defi_flow.chain.protocols import InspectResult, ObjectArgument, U64Argument
from defi_flow.execution import StepAction, plan_execution, validate_sequence
from defi_flow.persistence import load_flow, save_flow
from defi_flow.sequencing import compute_sequence
from defi_flow.simulation import TokenBalance, project_balances
from tests.factories import VALID_EVM_ADDRESS, VALID_SUI_ADDRESS, FakeChainReader, u64_bytes

POOL_ID = "0x" + "cd" * 32
TARGET = "0x2::pool::liquidity"

DOCUMENT = {
    "name": "Deposit when liquid",
    "nodes": [
        {"id": "wallet-1", "type": "wallet", "position": {"x": 250, "y": 0}, "data": {}},
        {
            "id": "swap-2",
            "type": "swap",
            "position": {"x": 0, "y": 100},
            "data": {
                "fromAsset": "SUI",
                "toAsset": "USDC",
                "amount": "2",
                "estimatedAmountOut": "6.5",
            },
        },
        {
            "id": "stake-3",
            "type": "stake",
            "position": {"x": 600, "y": 120},
            "data": {"stakeAmount": "1.5", "stakeValidator": VALID_SUI_ADDRESS},
        },
        {
            "id": "logic-4",
            "type": "logic",
            "position": {"x": 0, "y": 200},
            "data": {
                "logicType": "contract",
                "contractPackageId": "0x2",
                "contractModule": "pool",
                "contractFunction": "liquidity",
                "contractArguments": [POOL_ID, 7],
                "contractComparisonOperator": "gt",
                "contractCompareValue": "1000",
            },
        },
        {
            "id": "lend-5",
            "type": "lend",
            "position": {"x": 0, "y": 300},
            "data": {
                "lendAction": "deposit",
                "lendAsset": "USDC",
                "lendAmount": "5",
                "lendProtocol": "scallop",
            },
        },
        {
            "id": "bridge-6",
            "type": "bridge",
            "position": {"x": 0, "y": 400},
            "data": {
                "bridgeAsset": "SUI",
                "bridgeOutputAsset": "ETH",
                "bridgeChain": "ethereum",
                "bridgeAmount": "1",
                "ethereumAddress": VALID_EVM_ADDRESS,
            },
        },
    ],
    "edges": [
        {"id": "e1", "source": "wallet-1", "target": "swap-2"},
        {"id": "e2", "source": "wallet-1", "target": "stake-3"},
        {"id": "e3", "source": "swap-2", "target": "logic-4"},
        {"id": "e4", "source": "logic-4", "target": "lend-5"},
        {"id": "e5", "source": "lend-5", "target": "bridge-6"},
    ],
}


@pytest.fixture
def flow_path(tmp_path):
    path = tmp_path / "deposit.json"
    path.write_text(json.dumps(DOCUMENT), encoding="utf-8")
    return path


def _reader(liquidity: int) -> FakeChainReader:
    return FakeChainReader(
        inspect_results={TARGET: InspectResult(results=((u64_bytes(liquidity),),))}
    )


def test_loaded_flow_orders_and_validates(flow_path) -> None:
    name, graph = load_flow(flow_path)

    sequence = compute_sequence(graph)

    assert name == "Deposit when liquid"
    assert sequence.ids == ("swap-2", "stake-3", "logic-4", "lend-5", "bridge-6")
    assert validate_sequence(sequence, collect=True) == []


def test_lend_step_sees_swap_output(flow_path) -> None:
    _, graph = load_flow(flow_path)
    base = [TokenBalance("SUI", "10"), TokenBalance("USDC", "0")]

    projected = project_balances(graph, None, "lend-5", base)

    assert projected == [TokenBalance("SUI", "8.00"), TokenBalance("USDC", "6.50")]


@pytest.mark.asyncio
async def test_liquid_pool_runs_every_step(flow_path) -> None:
    _, graph = load_flow(flow_path)
    reader = _reader(5_000)

    plan = await plan_execution(compute_sequence(graph), graph, reader, sender=VALID_SUI_ADDRESS)

    assert [step.action for step in plan.steps] == [
        StepAction.EXECUTE,
        StepAction.EXECUTE,
        StepAction.GATE,
        StepAction.EXECUTE,
        StepAction.DEFER,
    ]
    assert plan.steps[2].condition_met is True
    assert reader.inspect_calls == [
        (TARGET, (ObjectArgument(POOL_ID), U64Argument(7)), VALID_SUI_ADDRESS)
    ]


@pytest.mark.asyncio
async def test_dry_pool_skips_only_the_gated_branch(flow_path) -> None:
    _, graph = load_flow(flow_path)

    plan = await plan_execution(compute_sequence(graph), graph, _reader(10))

    actions = {step.node.id: step.action for step in plan.steps}
    assert actions == {
        "swap-2": StepAction.EXECUTE,
        "stake-3": StepAction.EXECUTE,
        "logic-4": StepAction.GATE,
        "lend-5": StepAction.SKIP,
        "bridge-6": StepAction.SKIP,
    }
    assert plan.skip_ranks == frozenset({4, 5})
    assert not plan.all_skipped


@pytest.mark.asyncio
async def test_saved_copy_plans_identically(flow_path, tmp_path) -> None:
    name, graph = load_flow(flow_path)
    copy_path = save_flow(graph, tmp_path / "copy.json", name)
    _, reloaded = load_flow(copy_path)

    original = await plan_execution(compute_sequence(graph), graph, _reader(10))
    copied = await plan_execution(compute_sequence(reloaded), reloaded, _reader(10))

    assert [s.action for s in copied.steps] == [s.action for s in original.steps]
    assert copied.skip_ranks == original.skip_ranks
