"""Tests for PerformanceService over an in-memory repository."""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from tracker.models import (
    BaselineMode,
    MarketSeries,
    RankLabel,
    SeriesPoint,
    ValuePoint,
)
from tracker.services.performance_service import PerformanceService


@pytest.fixture
def service(repository, market_cache) -> PerformanceService:
    return PerformanceService(repository=repository, market_cache=market_cache)


class TestUserPerformance:
    """Tests for compute_user_performance()."""

    @pytest.mark.asyncio
    async def test_total_return(self, service, add_user) -> None:
        await add_user("u1", "10000.00", "10500.00", "11234.56")
        result = await service.compute_user_performance("u1")
        assert result is not None
        assert result.user_id == "u1"
        assert result.percent_change == 12.3456

    @pytest.mark.asyncio
    async def test_single_snapshot_is_none(self, service, add_user) -> None:
        await add_user("u1", "10000.00")
        assert await service.compute_user_performance("u1") is None

    @pytest.mark.asyncio
    async def test_zero_baseline_is_none(self, service, add_user) -> None:
        """A zero first value is logged and treated as no data, not an error."""
        await add_user("u1", "0", "100")
        assert await service.compute_user_performance("u1") is None


class TestLeaderboardStats:
    """Tests for compute_leaderboard_stats()."""

    @pytest_asyncio.fixture
    async def population(self, add_user) -> None:
        for user_id, last in [("u1", "120"), ("u2", "110"), ("u3", "100"), ("u4", "90"), ("u5", "80")]:
            await add_user(user_id, "100", last)
        await add_user("newbie", "100")

    @pytest.mark.asyncio
    async def test_best_user(self, service, population) -> None:
        stats = await service.compute_leaderboard_stats("u1")
        assert stats.user_rank is RankLabel.TOP_25
        assert stats.user_percent_change == 20.0
        assert stats.average_percent_change == 0.0
        assert stats.total_users == 5

    @pytest.mark.asyncio
    async def test_worst_user(self, service, population) -> None:
        stats = await service.compute_leaderboard_stats("u5")
        assert stats.user_rank is RankLabel.BOTTOM_25

    @pytest.mark.asyncio
    async def test_user_with_one_snapshot_is_not_applicable(self, service, population) -> None:
        stats = await service.compute_leaderboard_stats("newbie")
        assert stats.user_rank is RankLabel.NOT_APPLICABLE
        assert stats.total_users == 0
        assert stats.user_percent_change is None

    @pytest.mark.asyncio
    async def test_only_ranked_user(self, service, add_user) -> None:
        await add_user("solo", "100", "105")
        stats = await service.compute_leaderboard_stats("solo")
        assert stats.user_rank is RankLabel.TOP_100
        assert stats.total_users == 1

    @pytest.mark.asyncio
    async def test_zero_intermediate_value_still_ranked(self, service, add_user) -> None:
        await add_user("a", "100", "0", "50", is_public=True)
        await add_user("b", "100", "110", is_public=True)

        stats = await service.compute_leaderboard_stats("a")
        assert stats.user_percent_change == -50.0
        assert stats.total_users == 2
        assert stats.user_rank is RankLabel.BOTTOM_25

        board = await service.build_public_leaderboard()
        assert [(e.user_id, e.percent_change) for e in board] == [("b", 10.0), ("a", -50.0)]

    @pytest.mark.asyncio
    async def test_zero_baseline_user_left_out_of_population(self, service, add_user) -> None:
        await add_user("a", "100", "110")
        await add_user("b", "100", "90")
        await add_user("broken", "0", "50")
        stats = await service.compute_leaderboard_stats("a")
        assert stats.total_users == 2


class TestPublicLeaderboard:
    """Tests for build_public_leaderboard()."""

    @pytest.mark.asyncio
    async def test_only_public_users_with_data(self, service, add_user) -> None:
        await add_user("a", "100", "105", is_public=True)
        await add_user("b", "100", "115", is_public=True, display_name="Bee")
        await add_user("c", "100", "150")
        await add_user("d", "100", is_public=True)

        entries = await service.build_public_leaderboard()

        assert [(e.user_id, e.rank) for e in entries] == [("b", 1), ("a", 2)]
        assert entries[0].display_name == "Bee"
        assert entries[1].display_name == "a"
        assert entries[0].current_value == Decimal("115")


class TestDashboard:
    """Tests for get_dashboard_summary() and recent_entries()."""

    @pytest.mark.asyncio
    async def test_summary(self, service, add_user) -> None:
        await add_user("u1", "100", "200", "220")
        summary = await service.get_dashboard_summary("u1")
        assert summary.current_value == Decimal("220")
        assert summary.total_return_pct == 120.0
        assert summary.recent_change_pct == 10.0
        assert summary.snapshot_count == 3

    @pytest.mark.asyncio
    async def test_summary_without_snapshots(self, service, add_user) -> None:
        await add_user("u1")
        summary = await service.get_dashboard_summary("u1")
        assert summary.current_value is None
        assert summary.total_return_pct is None
        assert summary.snapshot_count == 0

    @pytest.mark.asyncio
    async def test_summary_single_snapshot_has_no_returns(self, service, add_user) -> None:
        await add_user("u1", "500")
        summary = await service.get_dashboard_summary("u1")
        assert summary.current_value == Decimal("500")
        assert summary.total_return_pct is None
        assert summary.recent_change_pct is None

    @pytest.mark.asyncio
    async def test_recent_entries_newest_first(self, service, add_user) -> None:
        await add_user("u1", "100", "0", "50", "60")
        entries = await service.recent_entries("u1")
        assert [e.snapshot.value for e in entries] == [
            Decimal("60"), Decimal("50"), Decimal("0"), Decimal("100"),
        ]
        assert [e.change_pct for e in entries] == [20.0, None, -100.0, None]

    @pytest.mark.asyncio
    async def test_recent_entries_limit(self, service, add_user) -> None:
        await add_user("u1", "1", "2", "3", "4")
        entries = await service.recent_entries("u1", limit=2)
        assert [e.snapshot.value for e in entries] == [Decimal("4"), Decimal("3")]


class TestCharting:
    """Tests for portfolio_series(), align_series() and compare_to_index()."""

    @pytest.mark.asyncio
    async def test_portfolio_series(self, service, add_user) -> None:
        await add_user("u1", "100", "110", "95")
        points = await service.portfolio_series("u1")
        assert [p.percent_change for p in points] == [0.0, 10.0, -5.0]
        assert points[0].date == date(2024, 1, 1)

    @pytest.mark.asyncio
    async def test_portfolio_series_zero_baseline_is_empty(self, service, add_user) -> None:
        await add_user("u1", "0", "10")
        assert await service.portfolio_series("u1") == []

    def test_align_series_zero_reference_is_all_missing(self, service) -> None:
        primary = [ValuePoint(date(2024, 1, 1), Decimal("1")), ValuePoint(date(2024, 1, 2), Decimal("2"))]
        reference = [ValuePoint(date(2024, 1, 1), Decimal("0")), ValuePoint(date(2024, 1, 2), Decimal("5"))]
        aligned = service.align_series(primary, reference, BaselineMode.SERIES_START)
        assert [p.percent_change for p in aligned] == [None, None]

    @pytest.mark.asyncio
    async def test_compare_to_index_rebased_to_first_snapshot(
        self, service, market_cache, add_user
    ) -> None:
        await add_user("u1", "100", "110", "120")
        market_cache.get_series.return_value = MarketSeries(
            symbol="SPY",
            name="S&P 500",
            points=(
                SeriesPoint(date(2024, 1, 1), -20.0),
                SeriesPoint(date(2024, 1, 3), 0.0),
            ),
        )

        aligned = await service.compare_to_index("u1", "SPY")

        assert aligned is not None
        assert [p.date for p in aligned] == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
        assert [p.percent_change for p in aligned] == [0.0, None, 25.0]
        market_cache.get_series.assert_awaited_once_with("SPY")

    @pytest.mark.asyncio
    async def test_compare_to_unknown_index_is_none(self, service, add_user) -> None:
        await add_user("u1", "100", "110")
        assert await service.compare_to_index("u1", "XYZ") is None

    @pytest.mark.asyncio
    async def test_market_series_passthrough(self, service, market_cache) -> None:
        assert await service.get_market_series() == []
        market_cache.get_market_series.assert_awaited_once()
