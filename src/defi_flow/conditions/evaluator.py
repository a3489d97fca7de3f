"""Evaluation of logic gates against chain state.

Both condition kinds reduce to ``evaluate_comparison`` on decimal values. The
reads are the only suspension points; failures are raised to the caller with
the step label attached and are never retried here.
"""

from __future__ import annotations

from decimal import Decimal

from defi_flow.chain.protocols import ChainReader
from defi_flow.conditions.arguments import parse_contract_arguments
from defi_flow.config.constants import RETURN_VALUE_BYTES, ZERO_ADDRESS
from defi_flow.domain.assets import DEFAULT_REGISTRY, AssetRegistry
from defi_flow.domain.comparison import ComparisonOperator, evaluate_comparison
from defi_flow.domain.models import BalanceCondition, ContractCondition, LogicData, Node, NodeKind
from defi_flow.errors import (
    ContractCallFailedError,
    ExternalReadFailedError,
    InvalidArgumentsError,
    NoReturnValueError,
)
from defi_flow.utilities.logging_patterns import get_logger
from defi_flow.utilities.parsing import parse_decimal

logger = get_logger(__name__, component="conditions")

DEFAULT_BALANCE_ASSET = "SUI"


def decode_u64_le(data: bytes | bytearray | list[int]) -> int:
    """Unsigned little-endian integer from the first 8 bytes (zero-padded)."""
    return int.from_bytes(bytes(data[:RETURN_VALUE_BYTES]), "little")


def _threshold(compare_value: str | None, step: str | None) -> Decimal:
    value = parse_decimal(compare_value)
    if value is None:
        raise InvalidArgumentsError(
            f"Compare value {compare_value!r} is not a number",
            raw_arguments=compare_value,
            step=step,
        )
    return value


def _operator(operator: ComparisonOperator | str | None, step: str | None) -> ComparisonOperator:
    resolved = ComparisonOperator.parse(operator)
    if resolved is None:
        raise InvalidArgumentsError(f"Unknown comparison operator {operator!r}", step=step)
    return resolved


async def evaluate_balance_condition(
    reader: ChainReader,
    address: str,
    asset: str,
    operator: ComparisonOperator | str,
    compare_value: str,
    step: str | None = None,
    *,
    registry: AssetRegistry = DEFAULT_REGISTRY,
) -> bool:
    """Compare ``address``'s balance of ``asset`` against ``compare_value``."""
    op = _operator(operator, step)
    threshold = _threshold(compare_value, step)
    asset_info = registry.require(asset, step=step)

    try:
        raw_balance = await reader.get_balance(address, asset_info.coin_type)
    except ExternalReadFailedError as exc:
        raise ExternalReadFailedError(
            f"Failed to fetch balance for {address}: {exc.message}",
            method="get_balance",
            step=step,
            original_error=exc,
        ) from exc

    balance = asset_info.to_decimal(raw_balance)
    condition_met = evaluate_comparison(balance, op, threshold)
    logger.info(
        f"{step}: Logic check - {balance} {asset_info.symbol} {op.symbol} {threshold} "
        f"= {condition_met}",
        step=step,
        condition="balance",
        condition_met=condition_met,
    )
    return condition_met


async def evaluate_contract_condition(
    reader: ChainReader,
    target: str,
    arguments: str | None,
    operator: ComparisonOperator | str,
    compare_value: str,
    step: str | None = None,
    *,
    sender: str = ZERO_ADDRESS,
) -> bool:
    """Call a read-only move function and compare its u64 result.

    ``target`` is ``package::module::function``; ``arguments`` is the raw JSON
    array typed by the user.
    """
    op = _operator(operator, step)
    threshold = _threshold(compare_value, step)
    move_arguments = parse_contract_arguments(arguments, step=step)

    try:
        result = await reader.inspect_move_call(target, move_arguments, sender=sender)
    except ExternalReadFailedError as exc:
        raise ContractCallFailedError(
            f"Contract call failed: {exc.message}", target=target, step=step, original_error=exc
        ) from exc

    if result.error:
        raise ContractCallFailedError(
            f"Contract call failed: {result.error}", target=target, step=step
        )
    if not result.results:
        raise NoReturnValueError("No return value from contract", target=target, step=step)
    return_values = result.results[0]
    if not return_values or not return_values[0]:
        raise NoReturnValueError("No return data from contract", target=target, step=step)

    contract_value = Decimal(decode_u64_le(return_values[0]))
    condition_met = evaluate_comparison(contract_value, op, threshold)
    logger.info(
        f"{step}: Contract check - {contract_value} {op.symbol} {threshold} = {condition_met}",
        step=step,
        condition="contract",
        target=target,
        condition_met=condition_met,
    )
    return condition_met


class ConditionEvaluator:
    """Dispatches a logic node to the matching condition evaluation.

    Holds no per-evaluation state, so one instance can evaluate several logic
    nodes concurrently.
    """

    def __init__(
        self,
        reader: ChainReader,
        *,
        registry: AssetRegistry = DEFAULT_REGISTRY,
        sender: str = ZERO_ADDRESS,
    ) -> None:
        self.reader = reader
        self.registry = registry
        self.sender = sender

    async def evaluate(self, node: Node, step: str | None = None) -> bool:
        if node.kind is not NodeKind.LOGIC or not isinstance(node.data, LogicData):
            raise TypeError(f"Node {node.id!r} is not a logic node")

        condition = node.data.condition
        if isinstance(condition, BalanceCondition):
            return await evaluate_balance_condition(
                self.reader,
                condition.address or "",
                condition.asset or DEFAULT_BALANCE_ASSET,
                condition.operator,
                condition.compare_value,
                step,
                registry=self.registry,
            )
        if isinstance(condition, ContractCondition):
            return await evaluate_contract_condition(
                self.reader,
                condition.target,
                condition.arguments,
                condition.operator,
                condition.compare_value,
                step,
                sender=self.sender,
            )
        raise InvalidArgumentsError(f'Unknown logic type "{node.data.logic_type}"', step=step)


__all__ = [
    "ConditionEvaluator",
    "decode_u64_le",
    "evaluate_balance_condition",
    "evaluate_contract_condition",
]
