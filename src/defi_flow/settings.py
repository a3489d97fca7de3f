"""Typed configuration backed by environment variables."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from defi_flow.config.constants import DEFAULT_HTTP_TIMEOUT, DEFAULT_RPC_URL, ZERO_ADDRESS

_DEFAULT_ENV_FILES: tuple[Path, ...] = (
    Path(".env"),
    Path("config/.env"),
)


class Settings(BaseSettings):
    """Application configuration loaded from ``DEFI_FLOW_*`` variables and `.env` files."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="DEFI_FLOW_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    rpc_url: str = Field(
        default=DEFAULT_RPC_URL,
        description="JSON-RPC endpoint used for balance reads and contract inspection.",
    )
    http_timeout_seconds: float = Field(
        default=DEFAULT_HTTP_TIMEOUT,
        gt=0,
        description="Total timeout applied to each RPC request.",
    )
    inspect_sender: str = Field(
        default=ZERO_ADDRESS,
        description="Sender identity for read-only contract inspection.",
    )
    strict_cycles: bool = Field(
        default=False,
        description="Reject flows whose executable steps form a dependency cycle.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level.",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Directory for structured JSON logs.",
    )
    json_logs: bool = Field(
        default=False,
        description="Write JSON log records to `log_dir`.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("inspect_sender")
    @classmethod
    def _check_sender(cls, value: str) -> str:
        if not value.startswith("0x"):
            raise ValueError("inspect_sender must be a 0x-prefixed address")
        return value


def _existing_env_files() -> list[str]:
    return [str(path) for path in _DEFAULT_ENV_FILES if path.exists()]


@lru_cache
def get_settings(_env_files: Sequence[str] | None = None) -> Settings:
    """Load settings once per process, respecting `.env` fallbacks."""
    env_files = list(_env_files) if _env_files is not None else _existing_env_files()
    if env_files:
        return Settings(_env_file=env_files)
    return Settings()


__all__ = ["Settings", "get_settings"]
