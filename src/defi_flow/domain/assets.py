"""Asset registry: symbol -> decimal precision and chain-level coin type."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal

from defi_flow.errors import MissingAssetError


@dataclass(frozen=True, slots=True)
class AssetInfo:
    symbol: str
    decimals: int
    coin_type: str

    def to_decimal(self, raw_amount: int | str) -> Decimal:
        """Convert an integer amount in the smallest unit into a token amount."""
        return Decimal(int(raw_amount)).scaleb(-self.decimals)


class AssetRegistry(Mapping[str, AssetInfo]):
    """Case-insensitive symbol lookup over a fixed set of assets."""

    def __init__(self, assets: Iterable[AssetInfo]) -> None:
        self._assets: dict[str, AssetInfo] = {}
        for asset in assets:
            self._assets[asset.symbol.upper()] = asset

    def __getitem__(self, symbol: str) -> AssetInfo:
        return self._assets[symbol.upper()]

    def __iter__(self) -> Iterator[str]:
        return (asset.symbol for asset in self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.upper() in self._assets

    def require(self, symbol: str | None, *, step: str | None = None) -> AssetInfo:
        """Return the asset for ``symbol`` or raise ``MissingAssetError``."""
        if symbol and symbol in self:
            return self[symbol]
        raise MissingAssetError(f"Unknown asset {symbol!r}", symbol=symbol, step=step)


SUI_MAINNET_ASSETS: tuple[AssetInfo, ...] = (
    AssetInfo("SUI", 9, "0x2::sui::SUI"),
    AssetInfo(
        "USDC",
        6,
        "0xdba34672e30cb065b1f93e3ab55318768fd6fef66c15942c9f7cb846e2f900e7::usdc::USDC",
    ),
    AssetInfo(
        "USDT",
        6,
        "0x375f70cf2ae4c00bf37117d0c85a2c71545e6ee05c4a5c7d282cd66a4504b068::usdt::USDT",
    ),
    AssetInfo(
        "WAL",
        9,
        "0x356a26eb9e012a68958082340d4c4116e7f55615cf27affcff209cf0ae544f59::wal::WAL",
    ),
    AssetInfo(
        "CETUS",
        9,
        "0x06864a6f921804860930db6ddbe2e16acdf8504495ea7481637a1c8b9a8fe54b::cetus::CETUS",
    ),
    AssetInfo(
        "DEEP",
        6,
        "0xdeeb7a4662eec9f2f3def03fb937a663dddaa2e215b8078a284d026b7946c270::deep::DEEP",
    ),
    AssetInfo(
        "BLUE",
        9,
        "0xe1b45a0e641b9955a20aa0ad1c1f4ad86aad8afb07296d4085e349a50e90bdca::blue::BLUE",
    ),
    AssetInfo(
        "BUCK",
        9,
        "0xce7ff77a83ea0cb6fd39bd8748e2ec89a3f41e8efdc3f4eb123e0ca37b184db2::buck::BUCK",
    ),
    AssetInfo(
        "AUSD",
        6,
        "0x2053d08c1e2bd02791056171aab0fd12bd7cd7efad2ab8f6b9c8902f14df2ff2::ausd::AUSD",
    ),
)

DEFAULT_REGISTRY = AssetRegistry(SUI_MAINNET_ASSETS)

__all__ = ["AssetInfo", "AssetRegistry", "DEFAULT_REGISTRY", "SUI_MAINNET_ASSETS"]
