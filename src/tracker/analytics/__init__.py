"""Pure performance analytics: percent series, returns, ranking and leaderboard.

Every function here is synchronous and side-effect free, so it is safe to
call concurrently from request handlers without locking.
"""

from tracker.analytics.leaderboard import build_public_leaderboard, resolve_display_name
from tracker.analytics.performance import compute_performance, require_performance
from tracker.analytics.ranking import compute_leaderboard_stats, rank_label
from tracker.analytics.timeseries import (
    align_series,
    percent_change,
    percent_series,
    snapshot_points,
    sort_snapshots,
)

__all__ = [
    "align_series",
    "build_public_leaderboard",
    "compute_leaderboard_stats",
    "compute_performance",
    "percent_change",
    "percent_series",
    "rank_label",
    "require_performance",
    "resolve_display_name",
    "snapshot_points",
    "sort_snapshots",
]
