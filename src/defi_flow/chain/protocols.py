"""
Protocol definitions for the chain-read boundary.

Logic gates are the only part of the core that reads chain state. They do so
through ``ChainReader`` so tests and alternative networks can supply their own
implementation.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable


@dataclass(frozen=True, slots=True)
class ObjectArgument:
    """Reference to an on-chain object passed to a move call."""

    object_id: str


@dataclass(frozen=True, slots=True)
class U64Argument:
    """Unsigned 64-bit literal passed to a move call."""

    value: int


MoveArgument = Union[ObjectArgument, U64Argument]


@dataclass(frozen=True, slots=True)
class InspectResult:
    """Outcome of a read-only move call.

    ``results`` holds one entry per executed command, each entry being the raw
    bytes of that command's return values in order.
    """

    error: str | None = None
    results: tuple[tuple[bytes, ...], ...] = ()


@runtime_checkable
class ChainReader(Protocol):
    """Read-only access to balances and move view functions."""

    async def get_balance(self, owner: str, coin_type: str) -> int:
        """Total balance of ``coin_type`` held by ``owner`` in the smallest unit."""
        ...

    async def inspect_move_call(
        self, target: str, arguments: Sequence[MoveArgument], *, sender: str
    ) -> InspectResult:
        """Execute ``package::module::function`` without committing any state."""
        ...


__all__ = [
    "ChainReader",
    "InspectResult",
    "MoveArgument",
    "ObjectArgument",
    "U64Argument",
]
