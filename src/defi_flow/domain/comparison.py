"""Comparison operators used by logic gates."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from defi_flow.config.constants import APPROX_TOLERANCE
from defi_flow.utilities.parsing import coerce_enum


class ComparisonOperator(str, Enum):
    """Operator applied between an observed value and a threshold."""

    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EQ = "eq"  # approximately equal
    NE = "ne"  # approximately not equal

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]

    @classmethod
    def parse(cls, value: str | ComparisonOperator | None) -> ComparisonOperator | None:
        """Resolve an operator from its name or symbol; ``None`` when unrecognised."""
        if value is None:
            return None
        operator, _ = coerce_enum(value, cls, aliases=_ALIASES)
        return operator


_SYMBOLS: dict[ComparisonOperator, str] = {
    ComparisonOperator.GT: ">",
    ComparisonOperator.GTE: ">=",
    ComparisonOperator.LT: "<",
    ComparisonOperator.LTE: "<=",
    ComparisonOperator.EQ: "≈",
    ComparisonOperator.NE: "≉",
}

_ALIASES: dict[str, ComparisonOperator] = {
    ">": ComparisonOperator.GT,
    ">=": ComparisonOperator.GTE,
    "<": ComparisonOperator.LT,
    "<=": ComparisonOperator.LTE,
    "==": ComparisonOperator.EQ,
    "=": ComparisonOperator.EQ,
    "!=": ComparisonOperator.NE,
}


def evaluate_comparison(
    actual: Decimal,
    operator: ComparisonOperator,
    expected: Decimal,
    *,
    tolerance: Decimal = APPROX_TOLERANCE,
) -> bool:
    """Return whether ``actual <operator> expected`` holds.

    ``EQ``/``NE`` compare within an absolute ``tolerance``; the ordering
    operators are exact.
    """
    if operator is ComparisonOperator.GT:
        return actual > expected
    if operator is ComparisonOperator.GTE:
        return actual >= expected
    if operator is ComparisonOperator.LT:
        return actual < expected
    if operator is ComparisonOperator.LTE:
        return actual <= expected
    if operator is ComparisonOperator.EQ:
        return abs(actual - expected) < tolerance
    if operator is ComparisonOperator.NE:
        return abs(actual - expected) >= tolerance
    raise ValueError(f"Unsupported comparison operator: {operator!r}")


__all__ = ["ComparisonOperator", "evaluate_comparison"]
