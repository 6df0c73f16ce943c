"""Read-side facade over the analytics engine.

Pulls snapshots and users from the repository, runs the pure calculators,
and resolves every analytics error into a well-defined result: a user whose
series has a zero baseline is logged and treated as having no data, an
unavailable index comes back as None or an empty list.
"""

from collections.abc import Sequence

from tracker.analytics.leaderboard import build_public_leaderboard
from tracker.analytics.performance import compute_performance
from tracker.analytics.ranking import compute_leaderboard_stats
from tracker.analytics.timeseries import (
    align_series,
    percent_change,
    percent_series,
    snapshot_points,
    sort_snapshots,
)
from tracker.exceptions import DegenerateBaselineError
from tracker.logging import get_logger
from tracker.market_data.cache import MarketDataCache
from tracker.models import (
    AlignedPoint,
    BaselineMode,
    DashboardSummary,
    LeaderboardStats,
    MarketSeries,
    PerformanceResult,
    PublicLeaderboardEntry,
    RecentEntry,
    SeriesPoint,
    Snapshot,
    SnapshotPerformance,
    User,
    ValuePoint,
)
from tracker.storage.repository import SnapshotRepository

logger = get_logger(__name__)


class PerformanceService:
    """Computes performance, ranking, leaderboard and chart data on demand.

    Args:
        repository: Source of users and snapshots.
        market_cache: Cache of external index series.
        recent_entries_limit: Default length of recent_entries().
    """

    def __init__(
        self,
        repository: SnapshotRepository,
        market_cache: MarketDataCache,
        recent_entries_limit: int = 10,
    ) -> None:
        self._repository = repository
        self._market_cache = market_cache
        self._recent_entries_limit = recent_entries_limit

    # ──────────────────────────────────────────────
    # Performance and ranking
    # ──────────────────────────────────────────────

    async def compute_user_performance(self, user_id: str) -> PerformanceResult | None:
        """Return the user's total return, or None without enough usable data."""
        perf = await self._snapshot_performance(user_id)
        if perf is None:
            return None
        return PerformanceResult(user_id=user_id, percent_change=perf.total_return_pct)

    async def compute_leaderboard_stats(self, user_id: str) -> LeaderboardStats:
        """Rank the user against every user with at least two snapshots."""
        own = await self.compute_user_performance(user_id)
        population = await self._population()
        return compute_leaderboard_stats(
            user_id,
            own.percent_change if own is not None else None,
            population,
        )

    async def build_public_leaderboard(self) -> list[PublicLeaderboardEntry]:
        """Return the opt-in leaderboard, best total return first."""
        candidates: list[tuple[User, SnapshotPerformance | None]] = []
        for user in await self._repository.list_public_users():
            candidates.append((user, await self._snapshot_performance(user.id)))
        return build_public_leaderboard(candidates)

    # ──────────────────────────────────────────────
    # Dashboard views
    # ──────────────────────────────────────────────

    async def get_dashboard_summary(self, user_id: str) -> DashboardSummary:
        """Current value plus total and recent returns for the dashboard cards."""
        snapshots = sort_snapshots(await self._repository.list_snapshots(user_id))
        perf = self._safe_performance(user_id, snapshots)
        return DashboardSummary(
            current_value=snapshots[-1].value if snapshots else None,
            total_return_pct=perf.total_return_pct if perf is not None else None,
            recent_change_pct=perf.recent_change_pct if perf is not None else None,
            snapshot_count=len(snapshots),
        )

    async def recent_entries(self, user_id: str, limit: int | None = None) -> list[RecentEntry]:
        """Newest snapshots first, each with its change from the one before it."""
        limit = self._recent_entries_limit if limit is None else limit
        ordered = sort_snapshots(await self._repository.list_snapshots(user_id))

        entries: list[RecentEntry] = []
        for i in range(len(ordered) - 1, -1, -1):
            if len(entries) >= limit:
                break
            change: float | None = None
            if i > 0 and ordered[i - 1].value != 0:
                change = percent_change(ordered[i].value, ordered[i - 1].value)
            entries.append(RecentEntry(snapshot=ordered[i], change_pct=change))
        return entries

    # ──────────────────────────────────────────────
    # Charting
    # ──────────────────────────────────────────────

    async def get_market_series(self) -> list[MarketSeries]:
        """Cached index series; may refresh from upstream first."""
        return await self._market_cache.get_market_series()

    def align_series(
        self,
        primary: Sequence[ValuePoint],
        reference: Sequence[ValuePoint],
        baseline_mode: BaselineMode = BaselineMode.PRIMARY_START,
    ) -> list[AlignedPoint]:
        """Align a reference series onto the primary's dates.

        A zero reference baseline yields an all-missing series rather than
        an error.
        """
        try:
            return align_series(primary, reference, baseline_mode)
        except DegenerateBaselineError:
            logger.warning("degenerate_reference_baseline", mode=baseline_mode.value)
            return [
                AlignedPoint(date=p.date, percent_change=None)
                for p in sorted(primary, key=lambda p: p.date)
            ]

    async def portfolio_series(self, user_id: str) -> list[SeriesPoint]:
        """The user's own percent series, first snapshot as baseline."""
        points = snapshot_points(await self._repository.list_snapshots(user_id))
        try:
            return percent_series(points)
        except DegenerateBaselineError:
            logger.warning("degenerate_baseline", user_id=user_id)
            return []

    async def compare_to_index(self, user_id: str, symbol: str) -> list[AlignedPoint] | None:
        """Index performance re-based to the user's first snapshot date.

        Returns None if the symbol is not in the cache.
        """
        series = await self._market_cache.get_series(symbol)
        if series is None:
            return None
        primary = snapshot_points(await self._repository.list_snapshots(user_id))
        return self.align_series(primary, series.as_levels(), BaselineMode.PRIMARY_START)

    # ──────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────

    async def _snapshot_performance(self, user_id: str) -> SnapshotPerformance | None:
        snapshots = await self._repository.list_snapshots(user_id)
        return self._safe_performance(user_id, snapshots)

    @staticmethod
    def _safe_performance(
        user_id: str, snapshots: Sequence[Snapshot]
    ) -> SnapshotPerformance | None:
        try:
            return compute_performance(snapshots)
        except DegenerateBaselineError:
            logger.warning("degenerate_baseline", user_id=user_id, snapshots=len(snapshots))
            return None

    async def _population(self) -> list[PerformanceResult]:
        """Total returns of every user with at least two usable snapshots."""
        population: list[PerformanceResult] = []
        for row in await self._repository.list_users_with_snapshot_counts():
            if row.snapshot_count < 2:
                continue
            result = await self.compute_user_performance(row.user_id)
            if result is not None:
                population.append(result)
        return population
