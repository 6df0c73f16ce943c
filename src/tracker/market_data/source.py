"""Abstract market data source interface.

The cache depends only on this contract, keeping provider-specific
request and payload details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod

from tracker.models import PricePoint


class MarketDataSource(ABC):
    """Abstract base class for daily closing-price providers."""

    @abstractmethod
    async def fetch_daily_closes(self, symbol: str) -> list[PricePoint]:
        """Fetch recent daily closing prices for one symbol.

        Returns points in any order. May return an empty list when the
        provider has nothing for the symbol.

        Raises:
            UpstreamFetchError: If the provider fails or answers with an error.
        """
        ...

    async def close(self) -> None:
        """Release held resources (e.g. HTTP connection pools)."""
