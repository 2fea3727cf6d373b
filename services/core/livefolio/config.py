from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

from .providers.base import AssetType


# Get the directory where this config.py file is located
_config_dir = Path(__file__).parent
_env_file = _config_dir.parent / ".env"  # services/core/.env


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Storage (holdings collaborator)
    sqlite_path: str = "data/portfolio.db"
    sync_holdings: bool = True  # push refreshed prices back into the holdings table

    # Currency normalization
    base_currency: str = "TRY"
    crypto_quote: str = "USDT"  # Binance quote asset for crypto pairs

    # Polling
    poll_interval_seconds: float = 3.0
    poll_on_start: bool = True
    max_concurrency_per_class: int = 5
    request_timeout_seconds: float = 8.0

    # Fetch cache TTLs per asset class
    cache_sweep_seconds: float = 60.0
    crypto_ttl_seconds: float = 5.0
    fx_ttl_seconds: float = 10.0
    commodity_ttl_seconds: float = 60.0
    stock_ttl_seconds: float = 120.0

    # Reconciliation
    reconcile_tolerance_seconds: float = 1.0
    stale_after_seconds: float = 300.0

    # Streaming channel
    stream_enabled: bool = True
    stream_url: str = "wss://stream.binance.com:9443/stream"
    reconnect_base_delay: float = 1.0
    reconnect_max_delay: float = 30.0

    # Provider keys
    collectapi_key: str | None = None

    def ttl_for(self, asset_type: AssetType) -> float:
        """Cache TTL for provider calls of the given asset class."""
        if asset_type == AssetType.CRYPTO:
            return self.crypto_ttl_seconds
        if asset_type == AssetType.CURRENCY:
            return self.fx_ttl_seconds
        if asset_type == AssetType.COMMODITY:
            return self.commodity_ttl_seconds
        return self.stock_ttl_seconds

    def get_base_currency(self) -> str:
        return self.base_currency.strip().upper()


def get_settings() -> Settings:
    return Settings()
