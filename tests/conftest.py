"""Shared test fixtures for the portfolio tracker."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from tracker.config import AppSettings, LeaderboardSettings, MarketDataSettings, StorageSettings
from tracker.market_data.cache import MarketDataCache
from tracker.storage.memory import InMemoryRepository

START = datetime(2024, 1, 1, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (in-memory storage, dummy API key)."""
    return AppSettings(
        log_level="DEBUG",
        market=MarketDataSettings(
            api_key="test-api-key",  # type: ignore[arg-type]
            indices={"SPY": "S&P 500", "QQQ": "QQQ"},
        ),
        storage=StorageSettings(backend="memory"),
        leaderboard=LeaderboardSettings(),
    )


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def market_cache() -> AsyncMock:
    """MarketDataCache stand-in with no series cached."""
    cache = AsyncMock(spec=MarketDataCache)
    cache.get_market_series.return_value = []
    cache.get_series.return_value = None
    return cache


@pytest.fixture
def add_user(repository):
    """Create a user and record one snapshot per value on consecutive days."""

    async def _add_user(
        user_id: str,
        *values: str,
        is_public: bool = False,
        is_admin: bool = False,
        display_name: str | None = None,
    ):
        user = await repository.create_user(
            f"{user_id}@example.com",
            display_name=display_name,
            is_public=is_public,
            is_admin=is_admin,
            user_id=user_id,
        )
        for i, value in enumerate(values):
            await repository.add_snapshot(user_id, Decimal(value), START + timedelta(days=i))
        return user

    return _add_user
