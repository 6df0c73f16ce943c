"""Tests for settings loading and component wiring."""

import pytest

from tracker.config import AppSettings, StorageSettings
from tracker.main import build_components
from tracker.market_data.cache import CacheState
from tracker.services.account_service import AccountService
from tracker.services.performance_service import PerformanceService
from tracker.storage.memory import InMemoryRepository
from tracker.storage.sqlite import SqliteRepository


class TestSettings:
    def test_defaults(self) -> None:
        settings = AppSettings()
        assert settings.market.cache_ttl_seconds == 86400
        assert settings.market.window_size == 90
        assert "SPY" in settings.market.indices
        assert settings.leaderboard.display_name_max_length == 50

    def test_nested_env_override(self, monkeypatch) -> None:
        monkeypatch.setenv("MARKET__WINDOW_SIZE", "30")
        monkeypatch.setenv("STORAGE__BACKEND", "sqlite")
        settings = AppSettings()
        assert settings.market.window_size == 30
        assert settings.storage.backend == "sqlite"

    def test_api_key_is_secret(self, mock_settings) -> None:
        assert "test-api-key" not in repr(mock_settings.market)
        assert mock_settings.market.api_key.get_secret_value() == "test-api-key"


class TestBuildComponents:
    @pytest.mark.asyncio
    async def test_memory_backend(self, mock_settings) -> None:
        components = build_components(mock_settings)
        try:
            assert isinstance(components["repository"], InMemoryRepository)
            assert isinstance(components["performance_service"], PerformanceService)
            assert isinstance(components["account_service"], AccountService)
            assert components["market_cache"].state is CacheState.EMPTY
        finally:
            await components["source"].close()

    @pytest.mark.asyncio
    async def test_sqlite_backend_not_connected_yet(self, mock_settings, tmp_path) -> None:
        mock_settings.storage = StorageSettings(backend="sqlite", db_path=str(tmp_path / "t.db"))
        components = build_components(mock_settings)
        try:
            repository = components["repository"]
            assert isinstance(repository, SqliteRepository)
            with pytest.raises(RuntimeError):
                _ = repository.db
        finally:
            await components["source"].close()
