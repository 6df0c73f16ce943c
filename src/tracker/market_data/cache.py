"""Time-bounded cache of external index series for comparison charts.

One cache entry holds every configured index plus a single fetch
timestamp. A read that finds the entry missing or older than the TTL
refreshes first and then serves (refresh-then-serve).

Refreshes take no lock. Concurrent readers may trigger redundant upstream
fetches, but each refresh builds a complete frozen MarketCacheEntry and
publishes it with a single attribute assignment, so readers always see
either the old entry or the new one. A refresh that is cancelled or
abandoned never touches the entry already in place.

Each symbol is fetched independently: a failing, empty, slow or
zero-priced symbol is logged and left out, and the rest still publish.
If every symbol fails, an empty entry is published anyway so the clock
advances and upstream is not hammered on every request.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from tracker.analytics.timeseries import percent_series
from tracker.exceptions import DegenerateBaselineError, UpstreamFetchError
from tracker.logging import bound_context, get_logger
from tracker.market_data.source import MarketDataSource
from tracker.models import MarketSeries, PricePoint, ValuePoint

logger = get_logger(__name__)


class CacheState(str, Enum):
    """Lifecycle of the cache entry."""

    EMPTY = "empty"  # no refresh attempted yet
    POPULATED = "populated"
    STALE = "stale"


@dataclass(frozen=True)
class MarketCacheEntry:
    """A complete, immutable result of one refresh."""

    series: tuple[MarketSeries, ...]
    fetched_at: float
    failed_symbols: tuple[str, ...] = ()


def build_market_series(
    symbol: str,
    name: str,
    prices: list[PricePoint],
    window_size: int,
) -> MarketSeries | None:
    """Turn raw closes into a percent series against the latest close.

    Keeps the window_size most recent observations. Each point reads as
    "percent change from that day's close to the latest close's level",
    so the latest point is 0.0. Points are stored ascending by date.

    Returns None if there are no prices.

    Raises:
        DegenerateBaselineError: If the latest close is zero.
    """
    if not prices:
        return None

    window = sorted(prices, key=lambda p: p.date)[-window_size:]
    latest_close = window[-1].close
    points = percent_series(
        (ValuePoint(date=p.date, value=p.close) for p in window),
        baseline=latest_close,
    )
    return MarketSeries(symbol=symbol, name=name, points=tuple(points))


class MarketDataCache:
    """Serves index series with at most one upstream refresh per TTL.

    Args:
        source: Upstream provider of daily closes.
        indices: Mapping of symbol -> display name, in display order.
        ttl_seconds: Staleness interval of the whole entry (default 24h).
        window_size: Most recent observations kept per symbol.
        fetch_timeout: Upper bound in seconds for each symbol's fetch.
        clock: Returns the current time in seconds; injectable for tests.
    """

    def __init__(
        self,
        source: MarketDataSource,
        indices: dict[str, str],
        ttl_seconds: float = 24 * 60 * 60,
        window_size: int = 90,
        fetch_timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._indices = dict(indices)
        self._ttl = ttl_seconds
        self._window_size = window_size
        self._fetch_timeout = fetch_timeout
        self._clock = clock
        self._entry: MarketCacheEntry | None = None

    @property
    def state(self) -> CacheState:
        """Current lifecycle state, evaluated against the clock."""
        entry = self._entry
        if entry is None:
            return CacheState.EMPTY
        if self._clock() - entry.fetched_at >= self._ttl:
            return CacheState.STALE
        return CacheState.POPULATED

    @property
    def entry(self) -> MarketCacheEntry | None:
        """The last published entry, or None if no refresh has completed."""
        return self._entry

    @property
    def last_attempt_failed_symbols(self) -> tuple[str, ...]:
        """Symbols left out of the last published refresh, in configured order."""
        entry = self._entry
        return entry.failed_symbols if entry is not None else ()

    async def get_market_series(self) -> list[MarketSeries]:
        """Return cached series, refreshing first if empty or stale."""
        if self.state is not CacheState.POPULATED:
            await self.refresh()
        entry = self._entry
        return list(entry.series) if entry is not None else []

    async def get_series(self, symbol: str) -> MarketSeries | None:
        """Return one cached series by symbol, or None if unavailable."""
        for series in await self.get_market_series():
            if series.symbol == symbol:
                return series
        return None

    async def refresh(self) -> MarketCacheEntry:
        """Fetch every configured symbol and publish a new entry.

        Never raises for upstream failures; they are logged and the
        affected symbols are recorded in failed_symbols.
        """
        symbols = list(self._indices)
        results = await asyncio.gather(
            *(self._fetch_symbol(symbol) for symbol in symbols)
        )

        series = tuple(s for s in results if s is not None)
        failed = tuple(sym for sym, s in zip(symbols, results) if s is None)

        entry = MarketCacheEntry(
            series=series,
            fetched_at=self._clock(),
            failed_symbols=failed,
        )
        self._entry = entry

        if symbols and not series:
            logger.error("market_cache_refresh_all_failed", symbols=symbols)
        elif failed:
            logger.warning(
                "market_cache_refresh_partial",
                loaded=len(series),
                failed=list(failed),
            )
        else:
            logger.info("market_cache_refreshed", loaded=len(series))
        return entry

    async def _fetch_symbol(self, symbol: str) -> MarketSeries | None:
        """Fetch and transform one symbol, returning None on any failure."""
        with bound_context(symbol=symbol):
            return await self._load_symbol(symbol)

    async def _load_symbol(self, symbol: str) -> MarketSeries | None:
        name = self._indices[symbol]
        try:
            prices = await asyncio.wait_for(
                self._source.fetch_daily_closes(symbol),
                timeout=self._fetch_timeout,
            )
            series = build_market_series(symbol, name, prices, self._window_size)
        except asyncio.TimeoutError:
            logger.warning(
                "market_symbol_fetch_timeout",
                timeout=self._fetch_timeout,
            )
            return None
        except (UpstreamFetchError, DegenerateBaselineError) as e:
            logger.warning("market_symbol_fetch_failed", error=str(e))
            return None
        except Exception:
            logger.warning("market_symbol_fetch_error", exc_info=True)
            return None

        if series is None:
            logger.warning("market_symbol_no_data")
        return series
