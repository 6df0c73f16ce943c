"""Per-user performance from a snapshot sequence.

Total return is measured from the earliest to the latest snapshot; the
recent change from the second-to-last to the latest. Fewer than two
snapshots is reported as None, never as a 0% return.
"""

from collections.abc import Iterable

from tracker.analytics.timeseries import percent_change, sort_snapshots
from tracker.exceptions import InsufficientDataError
from tracker.models import Snapshot, SnapshotPerformance


def compute_performance(snapshots: Iterable[Snapshot]) -> SnapshotPerformance | None:
    """Compute total and most-recent-interval returns for one user.

    Args:
        snapshots: The user's snapshots, in any order.

    Returns:
        SnapshotPerformance, or None if fewer than 2 snapshots. The recent
        change is None when the second-to-last value is zero; the total
        return does not depend on it.

    Raises:
        DegenerateBaselineError: If the first value is zero.
    """
    ordered = sort_snapshots(snapshots)
    if len(ordered) < 2:
        return None

    first, previous, last = ordered[0], ordered[-2], ordered[-1]
    recent: float | None = None
    if previous.value != 0:
        recent = percent_change(last.value, previous.value)
    return SnapshotPerformance(
        total_return_pct=percent_change(last.value, first.value),
        recent_change_pct=recent,
        current_value=last.value,
        snapshot_count=len(ordered),
    )


def require_performance(snapshots: Iterable[Snapshot]) -> SnapshotPerformance:
    """Like compute_performance, but raise instead of returning None."""
    ordered = sort_snapshots(snapshots)
    result = compute_performance(ordered)
    if result is None:
        raise InsufficientDataError(
            f"need at least 2 snapshots, got {len(ordered)}"
        )
    return result
