"""Common parsing helpers for normalising amounts and enum-valued node fields."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Final, TypeVar

from defi_flow.config.constants import SMALL_BALANCE_THRESHOLD

EnumT = TypeVar("EnumT", bound=Enum)

_TWO_PLACES: Final[Decimal] = Decimal("0.01")
_SIX_PLACES: Final[Decimal] = Decimal("0.000001")


def parse_decimal(value: Any) -> Decimal | None:
    """Parse a user-entered amount into a finite ``Decimal``.

    Returns ``None`` for missing, blank, non-numeric, NaN or infinite input so
    callers can decide whether to skip the value or treat it as zero. Booleans
    are rejected even though they are ``int`` subclasses.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = Decimal(str(value))
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
    if not parsed.is_finite():
        return None
    return parsed


def format_balance(value: Decimal) -> str:
    """Render a projected balance: ``0.00``, six places below 0.01, else two places."""

    if value == 0:
        return "0.00"
    places = _SIX_PLACES if 0 < value < SMALL_BALANCE_THRESHOLD else _TWO_PLACES
    # quantize needs room for every integer digit plus the decimals
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 8)
        return str(value.quantize(places, rounding=ROUND_HALF_UP))


def coerce_enum(
    value: str | EnumT,
    enum_class: type[EnumT],
    *,
    case_sensitive: bool = False,
    aliases: dict[str, EnumT] | None = None,
) -> tuple[EnumT | None, str]:
    """Coerce a string or enum value to an enum, returning both enum and string.

    Args:
        value: String or enum value to coerce.
        enum_class: The target enum class.
        case_sensitive: If False (default), strings are lowercased before matching.
        aliases: Optional mapping of string aliases to enum values.

    Returns:
        A tuple of (enum_value, string_value) where enum_value is ``None`` when
        coercion failed and string_value is the normalized string representation.

    Examples:
        >>> coerce_enum("GT", ComparisonOperator)
        (ComparisonOperator.GT, "gt")

        >>> coerce_enum(">=", ComparisonOperator, aliases={">=": ComparisonOperator.GTE})
        (ComparisonOperator.GTE, ">=")
    """
    if isinstance(value, enum_class):
        return value, value.value

    string_value = value.strip() if case_sensitive else value.strip().lower()

    if aliases and string_value in aliases:
        return aliases[string_value], string_value

    try:
        enum_value = enum_class(string_value)
        return enum_value, enum_value.value
    except ValueError:
        return None, string_value


__all__ = [
    "EnumT",
    "coerce_enum",
    "format_balance",
    "parse_decimal",
]
