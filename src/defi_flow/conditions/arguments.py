"""Parsing of the JSON argument list attached to contract conditions."""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any

from defi_flow.chain.bcs import U64_MAX
from defi_flow.chain.protocols import MoveArgument, ObjectArgument, U64Argument
from defi_flow.errors import InvalidArgumentsError


def _to_u64(value: Any, step: str | None, raw: str) -> int:
    if isinstance(value, bool):
        raise InvalidArgumentsError(
            f"Invalid JSON arguments: {value!r} is not a u64", raw_arguments=raw, step=step
        )
    try:
        number = Decimal(str(value).strip()) if isinstance(value, (int, float, str)) else None
    except InvalidOperation:
        number = None
    if number is None or not number.is_finite() or number != number.to_integral_value():
        raise InvalidArgumentsError(
            f"Invalid JSON arguments: {value!r} is not a u64", raw_arguments=raw, step=step
        )
    integer = int(number)
    if not 0 <= integer <= U64_MAX:
        raise InvalidArgumentsError(
            f"Invalid JSON arguments: {value!r} is out of u64 range", raw_arguments=raw, step=step
        )
    return integer


def parse_contract_arguments(raw: str | None, *, step: str | None = None) -> list[MoveArgument]:
    """Turn the user's JSON array into move call arguments.

    Strings starting with ``0x`` are object references; every other element
    must be an unsigned 64-bit integer (number or numeric string). A missing or
    blank argument string means no arguments.
    """
    if raw is None or not raw.strip():
        return []

    try:
        values = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidArgumentsError(
            "Invalid JSON arguments", raw_arguments=raw, step=step, original_error=exc
        ) from exc

    if not isinstance(values, list):
        raise InvalidArgumentsError(
            "Invalid JSON arguments: arguments must be a JSON array", raw_arguments=raw, step=step
        )

    arguments: list[MoveArgument] = []
    for value in values:
        if isinstance(value, str) and value.startswith("0x"):
            arguments.append(ObjectArgument(value))
        else:
            arguments.append(U64Argument(_to_u64(value, step, raw)))
    return arguments


def parse_json_array(raw: str | None, *, what: str, step: str | None = None) -> list[Any]:
    """Parse an optional JSON array field, raising ``InvalidArgumentsError`` otherwise."""
    if raw is None or not raw.strip():
        return []
    try:
        values = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidArgumentsError(
            f"Invalid {what} JSON", raw_arguments=raw, step=step, original_error=exc
        ) from exc
    if not isinstance(values, list):
        raise InvalidArgumentsError(
            f"{what.capitalize()} must be a JSON array", raw_arguments=raw, step=step
        )
    return values


__all__ = ["parse_contract_arguments", "parse_json_array"]
