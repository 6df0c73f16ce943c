"""Market data layer -- external index series, provider client, and TTL cache."""

from tracker.market_data.alpha_vantage import AlphaVantageSource
from tracker.market_data.cache import CacheState, MarketCacheEntry, MarketDataCache
from tracker.market_data.source import MarketDataSource

__all__ = [
    "AlphaVantageSource",
    "CacheState",
    "MarketCacheEntry",
    "MarketDataCache",
    "MarketDataSource",
]
