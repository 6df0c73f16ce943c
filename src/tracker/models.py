"""Shared data models for the portfolio tracker.

CRITICAL: Monetary values use Decimal. Percent changes are plain floats
(12.34 means +12.34%) and are only produced at the final ratio step.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum


def utc_now() -> datetime:
    """Timezone-aware current time, used for created_at defaults."""
    return datetime.now(timezone.utc)


class RankLabel(str, Enum):
    """Coarse percentile bucket shown on a user's private leaderboard card."""

    TOP_10 = "Top 10%"
    TOP_25 = "Top 25%"
    TOP_50 = "Top 50%"
    TOP_75 = "Top 75%"
    BOTTOM_25 = "Bottom 25%"
    TOP_100 = "Top 100%"  # only eligible user
    NOT_APPLICABLE = "N/A"  # fewer than two snapshots


class BaselineMode(str, Enum):
    """Which value a reference series is measured against when aligned."""

    SERIES_START = "series_start"  # the reference series' own earliest value
    PRIMARY_START = "primary_start"  # reference value on the primary's first date


@dataclass(frozen=True)
class Snapshot:
    """One dated portfolio-value observation. Immutable once recorded."""

    id: str
    user_id: str
    value: Decimal
    date: datetime
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class User:
    """A registered user. is_admin is never changed through user-facing paths."""

    id: str
    email: str
    display_name: str | None = None
    is_public: bool = False
    is_admin: bool = False
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class UserSnapshotCount:
    """Row returned by the repository for population filtering."""

    user_id: str
    snapshot_count: int


@dataclass(frozen=True)
class SnapshotPerformance:
    """Derived performance of one user's snapshot sequence (>= 2 snapshots)."""

    total_return_pct: float  # first -> last
    recent_change_pct: float | None  # second-to-last -> last; None after a zero value
    current_value: Decimal
    snapshot_count: int


@dataclass(frozen=True)
class PerformanceResult:
    """A user's total return, as used for ranking. Never stored."""

    user_id: str
    percent_change: float


@dataclass(frozen=True)
class LeaderboardStats:
    """Private leaderboard view for one user.

    Percent fields are None when the user has fewer than two snapshots;
    "no data" is never reported as a 0% return.
    """

    user_percent_change: float | None
    average_percent_change: float | None
    user_rank: RankLabel
    total_users: int


@dataclass(frozen=True)
class PublicLeaderboardEntry:
    """One row of the opt-in public leaderboard."""

    user_id: str
    display_name: str
    email: str
    percent_change: float
    current_value: Decimal
    rank: int  # 1-based, distinct even for tied returns


@dataclass(frozen=True)
class ValuePoint:
    """A dated value in a series being converted to percent changes."""

    date: date
    value: Decimal


@dataclass(frozen=True)
class SeriesPoint:
    """A dated percent change relative to a series baseline."""

    date: date
    percent_change: float


@dataclass(frozen=True)
class AlignedPoint:
    """A primary-series date with the aligned reference percent change.

    percent_change is None when the reference has no observation on that
    calendar day. Consumers must gap such points, never join across them.
    """

    date: date
    percent_change: float | None


@dataclass(frozen=True)
class PricePoint:
    """A daily closing price as supplied by a market data source."""

    date: date
    close: Decimal


@dataclass(frozen=True)
class MarketSeries:
    """Percent-change series of one external index, ascending by date."""

    symbol: str
    name: str
    points: tuple[SeriesPoint, ...]

    def as_levels(self) -> list[ValuePoint]:
        """Rebuild relative price levels (base 100) from the percent points.

        Levels keep the ratios between any two days, so a level series can
        be re-based onto a different date without the original closes.
        """
        hundred = Decimal("100")
        return [
            ValuePoint(
                date=p.date,
                value=hundred * (1 + Decimal(str(p.percent_change)) / hundred),
            )
            for p in self.points
        ]


@dataclass(frozen=True)
class RecentEntry:
    """A snapshot with its change from the chronologically previous one."""

    snapshot: Snapshot
    change_pct: float | None  # None for the oldest snapshot or a zero predecessor


@dataclass(frozen=True)
class DashboardSummary:
    """Headline numbers for a user's dashboard cards."""

    current_value: Decimal | None
    total_return_pct: float | None
    recent_change_pct: float | None
    snapshot_count: int
