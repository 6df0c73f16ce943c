"""Alpha Vantage TIME_SERIES_DAILY client.

The free tier answers throttled or invalid requests with HTTP 200 and a
JSON body carrying "Note", "Information" or "Error Message" instead of the
time series, so the payload is checked before parsing.
"""

from datetime import date
from decimal import Decimal, InvalidOperation

import httpx

from tracker.exceptions import UpstreamFetchError
from tracker.logging import get_logger
from tracker.market_data.source import MarketDataSource
from tracker.models import PricePoint

logger = get_logger(__name__)

_SERIES_KEY = "Time Series (Daily)"
_CLOSE_KEY = "4. close"
_ERROR_KEYS = ("Error Message", "Note", "Information")


def parse_daily_series(payload: dict) -> list[PricePoint]:
    """Parse a TIME_SERIES_DAILY payload into price points.

    Rows with an unparseable date or close are skipped.

    Raises:
        UpstreamFetchError: If the payload carries an error or no series.
    """
    for key in _ERROR_KEYS:
        if key in payload:
            raise UpstreamFetchError(f"{key}: {payload[key]}")

    series = payload.get(_SERIES_KEY)
    if not isinstance(series, dict):
        raise UpstreamFetchError("response has no daily time series")

    points: list[PricePoint] = []
    for raw_date, row in series.items():
        try:
            day = date.fromisoformat(raw_date)
            close = Decimal(str(row[_CLOSE_KEY]))
        except (ValueError, KeyError, TypeError, InvalidOperation):
            logger.debug("alpha_vantage_row_skipped", date=raw_date)
            continue
        if not close.is_finite():
            continue
        points.append(PricePoint(date=day, close=close))
    return points


class AlphaVantageSource(MarketDataSource):
    """MarketDataSource backed by the Alpha Vantage REST API.

    Args:
        api_key: Alpha Vantage API key.
        base_url: API root, overridable for tests.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.alphavantage.co",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def fetch_daily_closes(self, symbol: str) -> list[PricePoint]:
        """Fetch the compact (last ~100 trading days) daily series."""
        params = {
            "function": "TIME_SERIES_DAILY",
            "symbol": symbol,
            "outputsize": "compact",
            "apikey": self._api_key,
        }
        try:
            response = await self._client.get("/query", params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"{symbol}: {e}") from e
        except ValueError as e:
            raise UpstreamFetchError(f"{symbol}: response is not JSON") from e

        if not isinstance(payload, dict):
            raise UpstreamFetchError(f"{symbol}: unexpected payload type")

        points = parse_daily_series(payload)
        logger.debug("alpha_vantage_series_fetched", symbol=symbol, points=len(points))
        return points

    async def close(self) -> None:
        await self._client.aclose()
