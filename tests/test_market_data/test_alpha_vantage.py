"""Tests for the Alpha Vantage client, using httpx.MockTransport."""

from datetime import date
from decimal import Decimal

import httpx
import pytest

from tracker.exceptions import UpstreamFetchError
from tracker.market_data.alpha_vantage import AlphaVantageSource, parse_daily_series

PAYLOAD = {
    "Meta Data": {"2. Symbol": "SPY"},
    "Time Series (Daily)": {
        "2024-03-05": {"1. open": "510.00", "4. close": "512.34"},
        "2024-03-04": {"1. open": "508.00", "4. close": "509.10"},
        "not-a-date": {"4. close": "1.00"},
        "2024-03-01": {"1. open": "500.00"},
    },
}


class TestParseDailySeries:
    """Tests for parse_daily_series()."""

    def test_parses_closes_and_skips_bad_rows(self) -> None:
        points = parse_daily_series(PAYLOAD)
        by_day = {p.date: p.close for p in points}
        assert by_day == {
            date(2024, 3, 5): Decimal("512.34"),
            date(2024, 3, 4): Decimal("509.10"),
        }

    @pytest.mark.parametrize("key", ["Note", "Information", "Error Message"])
    def test_error_payload_raises(self, key: str) -> None:
        with pytest.raises(UpstreamFetchError, match=key):
            parse_daily_series({key: "Thank you for using Alpha Vantage!"})

    def test_missing_series_raises(self) -> None:
        with pytest.raises(UpstreamFetchError):
            parse_daily_series({"Meta Data": {}})


class TestAlphaVantageSource:
    """Tests for AlphaVantageSource.fetch_daily_closes()."""

    @pytest.mark.asyncio
    async def test_fetch_sends_query_and_parses(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=PAYLOAD)

        source = AlphaVantageSource(
            api_key="demo-key",
            base_url="https://av.test",
            transport=httpx.MockTransport(handler),
        )
        points = await source.fetch_daily_closes("SPY")
        await source.close()

        assert len(points) == 2
        params = seen[0].url.params
        assert seen[0].url.path == "/query"
        assert params["function"] == "TIME_SERIES_DAILY"
        assert params["symbol"] == "SPY"
        assert params["apikey"] == "demo-key"

    @pytest.mark.asyncio
    async def test_http_error_raises_upstream_error(self) -> None:
        source = AlphaVantageSource(
            api_key="k",
            base_url="https://av.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        with pytest.raises(UpstreamFetchError):
            await source.fetch_daily_closes("SPY")
        await source.close()

    @pytest.mark.asyncio
    async def test_rate_limit_note_raises_upstream_error(self) -> None:
        source = AlphaVantageSource(
            api_key="k",
            base_url="https://av.test",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"Note": "API call frequency exceeded"})
            ),
        )
        with pytest.raises(UpstreamFetchError, match="Note"):
            await source.fetch_daily_closes("QQQ")
        await source.close()

    @pytest.mark.asyncio
    async def test_non_json_body_raises_upstream_error(self) -> None:
        source = AlphaVantageSource(
            api_key="k",
            base_url="https://av.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
        )
        with pytest.raises(UpstreamFetchError):
            await source.fetch_daily_closes("SPY")
        await source.close()
