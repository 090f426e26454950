"""
Configuration management using pydantic-settings.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from jorcore.constants import MAX_INPUTS


class WalletConfig(BaseSettings):
    """Tunables of funds discovery and conversion, overridable with JOR_WALLET_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="JOR_WALLET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Sequential (Icarus) address discovery stops after this many unused
    # addresses in a row on each chain
    gap_limit: int = Field(default=20, ge=1, le=10_000)

    # Inputs per conversion transaction; the ledger encodes the count on a byte
    max_inputs_per_transaction: int = Field(
        default=MAX_INPUTS,
        ge=1,
        le=MAX_INPUTS,
        description="Maximum inputs in one conversion transaction",
    )

    log_level: str = "INFO"


def get_config(**overrides: int | str | None) -> WalletConfig:
    """Build the configuration; None overrides fall back to the environment or defaults."""
    return WalletConfig(**{k: v for k, v in overrides.items() if v is not None})
