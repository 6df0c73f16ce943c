"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

#: Indices offered for comparison charts, symbol -> display name.
DEFAULT_INDICES: dict[str, str] = {
    "SPY": "S&P 500",
    "QQQ": "QQQ",
    "VIX": "VIX",
    "DIA": "Dow Jones",
}


class MarketDataSettings(BaseSettings):
    """External index data settings (Alpha Vantage daily series)."""

    model_config = SettingsConfigDict(env_prefix="MARKET_")

    api_key: SecretStr = SecretStr("")
    base_url: str = "https://www.alphavantage.co"
    cache_ttl_seconds: float = 24 * 60 * 60  # one upstream refresh per day
    window_size: int = 90  # most recent daily observations kept per symbol
    fetch_timeout: float = 10.0  # seconds, per symbol
    indices: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_INDICES))


class StorageSettings(BaseSettings):
    """Snapshot and user persistence settings."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: Literal["memory", "sqlite"] = "memory"
    db_path: str = "data/tracker.db"


class ApiSettings(BaseSettings):
    """HTTP API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000


class LeaderboardSettings(BaseSettings):
    """User-facing limits for settings and dashboard views."""

    model_config = SettingsConfigDict(env_prefix="LEADERBOARD_")

    display_name_max_length: int = 50
    recent_entries_limit: int = 10


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    market: MarketDataSettings = MarketDataSettings()
    storage: StorageSettings = StorageSettings()
    api: ApiSettings = ApiSettings()
    leaderboard: LeaderboardSettings = LeaderboardSettings()
