"""Application configuration via pydantic-settings.

Reads from .env file or environment variables prefixed with TRUSTBRIDGE_.

Usage:
    from trustbridge.config import get_settings
    settings = get_settings()
    print(settings.explorer_url)
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class NetworkConfig(BaseModel):
    """Static parameters of a custodian network."""

    chain_id: int
    rpc: str
    usdc: str
    explorer: str


NETWORKS: dict[str, NetworkConfig] = {
    "base-sepolia": NetworkConfig(
        chain_id=84532,
        rpc="https://sepolia.base.org",
        usdc="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
        explorer="https://sepolia.basescan.org",
    ),
}


class Settings(BaseSettings):
    """Central configuration for TrustBridge."""

    model_config = SettingsConfigDict(
        env_prefix="TRUSTBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Network ---
    network: str = "base-sepolia"
    contract: str | None = None  # custodian address, set after deployment
    identity: str = ""  # account the Agreement Client signs as

    # --- Asset ---
    asset_decimals: int = 6  # USDC

    # --- Transport ---
    transport_timeout_seconds: float = 30.0

    # --- Logging ---
    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def network_config(self) -> NetworkConfig:
        try:
            return NETWORKS[self.network]
        except KeyError:
            raise ValueError(f"Unknown network: {self.network}") from None

    @property
    def explorer_url(self) -> str:
        return self.network_config.explorer

    @property
    def decimal_scale(self) -> int:
        return 10**self.asset_decimals


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
