from __future__ import annotations

from decimal import Decimal

import pytest

from defi_flow.domain import ComparisonOperator, evaluate_comparison


@pytest.mark.parametrize(
    ("actual", "operator", "expected", "result"),
    [
        ("5", ComparisonOperator.GT, "4", True),
        ("4", ComparisonOperator.GT, "4", False),
        ("4", ComparisonOperator.GTE, "4", True),
        ("3.9999", ComparisonOperator.GTE, "4", False),
        ("3", ComparisonOperator.LT, "4", True),
        ("4", ComparisonOperator.LT, "4", False),
        ("4", ComparisonOperator.LTE, "4", True),
        ("4.0001", ComparisonOperator.LTE, "4", False),
    ],
)
def test_ordering_operators_are_exact(actual, operator, expected, result) -> None:
    assert evaluate_comparison(Decimal(actual), operator, Decimal(expected)) is result


def test_approximately_equal_uses_tolerance() -> None:
    assert evaluate_comparison(Decimal("5.00009"), ComparisonOperator.EQ, Decimal("5.0"))
    assert not evaluate_comparison(Decimal("5.001"), ComparisonOperator.EQ, Decimal("5.0"))


def test_approximately_not_equal_is_the_complement() -> None:
    assert not evaluate_comparison(Decimal("5.00009"), ComparisonOperator.NE, Decimal("5.0"))
    assert evaluate_comparison(Decimal("5.001"), ComparisonOperator.NE, Decimal("5.0"))


def test_tolerance_can_be_overridden() -> None:
    assert evaluate_comparison(
        Decimal("5.4"), ComparisonOperator.EQ, Decimal("5"), tolerance=Decimal("0.5")
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("gt", ComparisonOperator.GT),
        ("GTE", ComparisonOperator.GTE),
        (" lt ", ComparisonOperator.LT),
        ("<=", ComparisonOperator.LTE),
        ("==", ComparisonOperator.EQ),
        ("=", ComparisonOperator.EQ),
        ("!=", ComparisonOperator.NE),
        (ComparisonOperator.NE, ComparisonOperator.NE),
    ],
)
def test_parse_accepts_names_and_symbols(raw, expected) -> None:
    assert ComparisonOperator.parse(raw) is expected


def test_parse_rejects_unknown() -> None:
    assert ComparisonOperator.parse("approximately") is None
    assert ComparisonOperator.parse(None) is None


def test_symbols() -> None:
    assert ComparisonOperator.GTE.symbol == ">="
    assert ComparisonOperator.LT.symbol == "<"
