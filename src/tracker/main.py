"""Entry point for the portfolio tracker API.

Wires all components together and serves the FastAPI app with uvicorn.

Component wiring order (in build_components):
1. AppSettings (configuration)
2. Logging setup
3. SnapshotRepository (in-memory or SQLite)
4. MarketDataSource (Alpha Vantage)
5. MarketDataCache (24h index cache)
6. PerformanceService (read-side analytics)
7. AccountService (snapshots, settings, moderation)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from tracker.api.app import create_app
from tracker.config import AppSettings
from tracker.logging import get_logger, setup_logging
from tracker.market_data.alpha_vantage import AlphaVantageSource
from tracker.market_data.cache import MarketDataCache
from tracker.services.account_service import AccountService
from tracker.services.performance_service import PerformanceService
from tracker.storage.memory import InMemoryRepository
from tracker.storage.repository import SnapshotRepository
from tracker.storage.sqlite import SqliteRepository


def build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Does NOT open the SQLite connection; that happens in the lifespan.

    Returns:
        Dict mapping component names to instances.
    """
    repository: SnapshotRepository
    if settings.storage.backend == "sqlite":
        repository = SqliteRepository(settings.storage.db_path)
    else:
        repository = InMemoryRepository()

    source = AlphaVantageSource(
        api_key=settings.market.api_key.get_secret_value(),
        base_url=settings.market.base_url,
        timeout=settings.market.fetch_timeout,
    )

    market_cache = MarketDataCache(
        source=source,
        indices=settings.market.indices,
        ttl_seconds=settings.market.cache_ttl_seconds,
        window_size=settings.market.window_size,
        fetch_timeout=settings.market.fetch_timeout,
    )

    performance_service = PerformanceService(
        repository=repository,
        market_cache=market_cache,
        recent_entries_limit=settings.leaderboard.recent_entries_limit,
    )
    account_service = AccountService(
        repository=repository,
        display_name_max_length=settings.leaderboard.display_name_max_length,
    )

    return {
        "repository": repository,
        "source": source,
        "market_cache": market_cache,
        "performance_service": performance_service,
        "account_service": account_service,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open storage on startup; close storage and the HTTP client on shutdown."""
    logger = get_logger("tracker.main")
    components = app.state.components

    repository = components["repository"]
    if isinstance(repository, SqliteRepository):
        await repository.connect()

    logger.info("lifespan_started", storage=type(repository).__name__)

    yield

    await components["source"].close()
    await repository.close()
    logger.info("portfolio_tracker_stopped")


async def run() -> None:
    """Run the API server in the current event loop."""
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("tracker.main")

    if not settings.market.api_key.get_secret_value():
        logger.warning(
            "no_market_api_key_configured",
            note="Index requests will fail and the comparison list will be empty.",
        )

    components = build_components(settings)
    app = create_app(
        performance_service=components["performance_service"],
        account_service=components["account_service"],
        lifespan=lifespan,
    )
    app.state.components = components

    logger.info(
        "starting_api",
        host=settings.api.host,
        port=settings.api.port,
        storage=settings.storage.backend,
        indices=list(settings.market.indices),
    )

    config = uvicorn.Config(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
