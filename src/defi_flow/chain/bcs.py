"""Minimal BCS encoding for a single programmable move call.

Only the subset needed to inspect a view function is covered: pure ``u64``
inputs, owned/immutable and shared object inputs, and one ``MoveCall``
command wrapped in a ``ProgrammableTransaction`` transaction kind.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

U64_MAX = 2**64 - 1
ADDRESS_LENGTH = 32

# Enum variant indices in the Sui transaction schema
_KIND_PROGRAMMABLE = 0
_CALL_ARG_PURE = 0
_CALL_ARG_OBJECT = 1
_OBJECT_ARG_IMM_OR_OWNED = 0
_OBJECT_ARG_SHARED = 1
_COMMAND_MOVE_CALL = 0
_ARGUMENT_INPUT = 1


def uleb128(value: int) -> bytes:
    if value < 0:
        raise ValueError("uleb128 requires a non-negative integer")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def encode_u16(value: int) -> bytes:
    return value.to_bytes(2, "little")


def encode_u64(value: int) -> bytes:
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"{value} does not fit in u64")
    return value.to_bytes(8, "little")


def encode_bool(value: bool) -> bytes:
    return b"\x01" if value else b"\x00"


def encode_bytes(value: bytes) -> bytes:
    return uleb128(len(value)) + value


def encode_str(value: str) -> bytes:
    return encode_bytes(value.encode("utf-8"))


def normalize_address(address: str) -> str:
    """Lower-case, 0x-prefixed, left-padded to 32 bytes of hex."""
    body = address.lower().removeprefix("0x")
    if not body or len(body) > ADDRESS_LENGTH * 2:
        raise ValueError(f"Invalid address: {address!r}")
    int(body, 16)
    return "0x" + body.rjust(ADDRESS_LENGTH * 2, "0")


def encode_address(address: str) -> bytes:
    return bytes.fromhex(normalize_address(address)[2:])


@dataclass(frozen=True, slots=True)
class PureInput:
    value: bytes


@dataclass(frozen=True, slots=True)
class OwnedObjectInput:
    object_id: str
    version: int
    digest: bytes


@dataclass(frozen=True, slots=True)
class SharedObjectInput:
    object_id: str
    initial_shared_version: int
    mutable: bool = False


CallInput = Union[PureInput, OwnedObjectInput, SharedObjectInput]


def pure_u64(value: int) -> PureInput:
    return PureInput(encode_u64(value))


def encode_call_input(call_input: CallInput) -> bytes:
    if isinstance(call_input, PureInput):
        return uleb128(_CALL_ARG_PURE) + encode_bytes(call_input.value)
    if isinstance(call_input, OwnedObjectInput):
        return (
            uleb128(_CALL_ARG_OBJECT)
            + uleb128(_OBJECT_ARG_IMM_OR_OWNED)
            + encode_address(call_input.object_id)
            + encode_u64(call_input.version)
            + encode_bytes(call_input.digest)
        )
    if isinstance(call_input, SharedObjectInput):
        return (
            uleb128(_CALL_ARG_OBJECT)
            + uleb128(_OBJECT_ARG_SHARED)
            + encode_address(call_input.object_id)
            + encode_u64(call_input.initial_shared_version)
            + encode_bool(call_input.mutable)
        )
    raise TypeError(f"Unsupported call input: {call_input!r}")


def split_target(target: str) -> tuple[str, str, str]:
    """Split ``package::module::function``."""
    parts = target.split("::")
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"Move call target must be package::module::function, got {target!r}")
    return parts[0], parts[1], parts[2]


def encode_move_call_kind(target: str, inputs: Sequence[CallInput]) -> bytes:
    """BCS bytes of a ``TransactionKind`` running ``target`` over ``inputs``.

    Every input is passed to the call positionally; no type arguments.
    """
    package, module, function = split_target(target)

    encoded_inputs = uleb128(len(inputs)) + b"".join(encode_call_input(i) for i in inputs)

    arguments = uleb128(len(inputs)) + b"".join(
        uleb128(_ARGUMENT_INPUT) + encode_u16(index) for index in range(len(inputs))
    )
    move_call = (
        uleb128(_COMMAND_MOVE_CALL)
        + encode_address(package)
        + encode_str(module)
        + encode_str(function)
        + uleb128(0)  # type arguments
        + arguments
    )
    commands = uleb128(1) + move_call

    return uleb128(_KIND_PROGRAMMABLE) + encoded_inputs + commands


__all__ = [
    "CallInput",
    "OwnedObjectInput",
    "PureInput",
    "SharedObjectInput",
    "encode_address",
    "encode_bytes",
    "encode_call_input",
    "encode_move_call_kind",
    "encode_str",
    "encode_u64",
    "normalize_address",
    "pure_u64",
    "split_target",
    "uleb128",
]
