"""Pre-flight validation of the fields each step needs before it can run."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from decimal import Decimal

from defi_flow.conditions.arguments import parse_contract_arguments, parse_json_array
from defi_flow.domain.models import (
    BalanceCondition,
    BridgeData,
    ContractCondition,
    CustomData,
    LendAction,
    LendData,
    LogicData,
    Node,
    NodeKind,
    StakeData,
    SwapData,
    TransferData,
)
from defi_flow.errors import AggregateError, FlowError, StepValidationError, step_label
from defi_flow.utilities.parsing import parse_decimal

SUPPORTED_LEND_PROTOCOLS = frozenset({"scallop", "navi"})
DEFAULT_LEND_PROTOCOL = "scallop"
DEFAULT_STAKE_PROTOCOL = "native"
MIN_NATIVE_STAKE = Decimal("1")

_EVM_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _amount(value: str | None) -> Decimal:
    return parse_decimal(value) or Decimal("0")


def _require(value: str | None, message: str, step: str, field: str) -> None:
    if value is None or not str(value).strip():
        raise StepValidationError(message, field=field, value=value, step=step)


def _require_positive(value: str | None, step: str, field: str = "amount") -> Decimal:
    amount = _amount(value)
    if amount <= 0:
        raise StepValidationError(
            "Amount must be greater than 0", field=field, value=value, step=step
        )
    return amount


def _validate_transfer(data: TransferData, step: str) -> None:
    _require(data.recipient_address, "Recipient address is required", step, "recipient_address")
    _require_positive(data.amount, step)


def _validate_swap(data: SwapData, step: str) -> None:
    if not data.from_asset or not data.to_asset:
        raise StepValidationError("Both from and to assets are required", field="asset", step=step)
    _require_positive(data.amount, step)
    if data.from_asset.upper() == data.to_asset.upper():
        raise StepValidationError(
            "Cannot swap between the same asset", field="to_asset", value=data.to_asset, step=step
        )


def _validate_balance_condition(condition: BalanceCondition, step: str) -> None:
    _require(condition.address, "Address is required for balance check", step, "address")
    if condition.operator is None:
        raise StepValidationError("Comparison operator is required", field="operator", step=step)
    _require(condition.compare_value, "Compare value is required", step, "compare_value")


def _validate_contract_condition(condition: ContractCondition, step: str) -> None:
    _require(
        condition.package_id, "Package ID is required for contract check", step, "package_id"
    )
    _require(condition.module, "Module name is required for contract check", step, "module")
    _require(condition.function, "Function name is required for contract check", step, "function")
    if condition.operator is None:
        raise StepValidationError("Comparison operator is required", field="operator", step=step)
    _require(condition.compare_value, "Compare value is required", step, "compare_value")
    parse_contract_arguments(condition.arguments, step=step)


def _validate_logic(data: LogicData, step: str) -> None:
    condition = data.condition
    if isinstance(condition, BalanceCondition):
        _validate_balance_condition(condition, step)
    elif isinstance(condition, ContractCondition):
        _validate_contract_condition(condition, step)
    else:
        raise StepValidationError(
            f'Unknown logic type "{data.logic_type}"', field="logic_type", step=step
        )


def _validate_custom(data: CustomData, step: str) -> None:
    _require(data.package_id, "Package ID is required for custom contract", step, "package_id")
    _require(data.module, "Module name is required for custom contract", step, "module")
    _require(data.function, "Function name is required for custom contract", step, "function")
    parse_json_array(data.arguments, what="arguments", step=step)
    parse_json_array(data.type_arguments, what="type arguments", step=step)


def _validate_lend(data: LendData, step: str) -> None:
    _require_positive(data.amount, step)
    protocol = data.protocol or DEFAULT_LEND_PROTOCOL
    action = data.effective_action
    if protocol not in SUPPORTED_LEND_PROTOCOLS:
        raise StepValidationError(
            "Only Scallop and Navi protocols are supported currently",
            field="protocol",
            value=protocol,
            step=step,
        )
    if protocol == "navi" and action == LendAction.REPAY.value:
        raise StepValidationError(
            "Navi repay is not yet supported.", field="action", value=action, step=step
        )
    if action not in {a.value for a in LendAction}:
        raise StepValidationError(
            f'Unsupported lend action "{action}"', field="action", value=action, step=step
        )


def _validate_bridge(data: BridgeData, step: str) -> None:
    _require(data.asset, "Source asset is required", step, "asset")
    _require(data.output_asset, "Destination asset is required", step, "output_asset")
    _require(data.chain, "Destination chain is required", step, "chain")
    _require_positive(data.amount, step)
    _require(data.destination_address, "Ethereum address is required", step, "destination_address")
    address = data.destination_address or ""
    if not (address.endswith(".eth") or _EVM_ADDRESS.match(address)):
        raise StepValidationError(
            "Invalid Ethereum address format",
            field="destination_address",
            value=address,
            step=step,
        )


def _validate_stake(data: StakeData, step: str) -> None:
    amount = _require_positive(data.amount, step)
    if (data.protocol or DEFAULT_STAKE_PROTOCOL) == DEFAULT_STAKE_PROTOCOL:
        if amount < MIN_NATIVE_STAKE:
            raise StepValidationError(
                "Minimum native stake is 1 SUI", field="amount", value=data.amount, step=step
            )
        _require(data.validator, "Please select a validator", step, "validator")


_VALIDATORS: dict[NodeKind, Callable[..., None]] = {
    NodeKind.TRANSFER: _validate_transfer,
    NodeKind.SWAP: _validate_swap,
    NodeKind.LOGIC: _validate_logic,
    NodeKind.CUSTOM: _validate_custom,
    NodeKind.LEND: _validate_lend,
    NodeKind.BRIDGE: _validate_bridge,
    NodeKind.STAKE: _validate_stake,
}


def validate_step(node: Node, rank: int) -> None:
    """Raise a ``FlowError`` labelled ``Step {rank}`` if ``node`` cannot run."""
    step = step_label(rank)
    validator = _VALIDATORS.get(node.kind)
    if validator is None:
        raise StepValidationError(
            f'Node type "{node.kind.value}" cannot be executed', field="kind", step=step
        )
    validator(node.data, step)


def validate_sequence(steps: Iterable[Node], *, collect: bool = False) -> list[FlowError]:
    """Validate steps in rank order.

    With ``collect=False`` the first failure is raised. With ``collect=True``
    every failure is gathered and raised together as an ``AggregateError``.
    """
    errors: list[FlowError] = []
    for rank, node in enumerate(steps, start=1):
        try:
            validate_step(node, rank)
        except FlowError as exc:
            if not collect:
                raise
            errors.append(exc)
    if errors:
        raise AggregateError(f"{len(errors)} step(s) failed validation", errors=errors)
    return errors


__all__ = ["validate_sequence", "validate_step"]
