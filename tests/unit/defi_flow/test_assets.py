from __future__ import annotations

from decimal import Decimal

import pytest

from defi_flow.domain import DEFAULT_REGISTRY, AssetInfo, AssetRegistry
from defi_flow.errors import MissingAssetError


def test_lookup_is_case_insensitive() -> None:
    assert DEFAULT_REGISTRY["usdc"].decimals == 6
    assert "Sui" in DEFAULT_REGISTRY
    assert DEFAULT_REGISTRY.require("sui").coin_type == "0x2::sui::SUI"


def test_registry_lists_mainnet_tokens() -> None:
    assert set(DEFAULT_REGISTRY) == {
        "SUI",
        "USDC",
        "USDT",
        "WAL",
        "CETUS",
        "DEEP",
        "BLUE",
        "BUCK",
        "AUSD",
    }


def test_to_decimal_scales_by_precision() -> None:
    assert DEFAULT_REGISTRY["SUI"].to_decimal(1_500_000_000) == Decimal("1.5")
    assert DEFAULT_REGISTRY["USDC"].to_decimal("2500000") == Decimal("2.5")


def test_unknown_symbol_raises_with_step() -> None:
    with pytest.raises(MissingAssetError) as exc_info:
        DEFAULT_REGISTRY.require("DOGE", step="Step 3")

    error = exc_info.value
    assert error.message.startswith("Step 3: ")
    assert error.context["symbol"] == "DOGE"
    assert error.error_code == "MISSING_ASSET"


def test_missing_symbol_raises() -> None:
    with pytest.raises(MissingAssetError):
        DEFAULT_REGISTRY.require(None)


def test_custom_registry() -> None:
    registry = AssetRegistry([AssetInfo("TEST", 2, "0x1::test::TEST")])

    assert len(registry) == 1
    assert registry["test"].to_decimal(123) == Decimal("1.23")
    assert "SUI" not in registry
