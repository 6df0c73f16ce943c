"""Percentile ranking of one user against every user with a computable return.

percentile = position / total_users * 100, where position is the 1-based
index in the population sorted by return descending. Ties are broken by
user_id so the same inputs always give the same label.
"""

from collections.abc import Sequence

from tracker.models import LeaderboardStats, PerformanceResult, RankLabel

#: Ascending percentile ceilings; the first one the percentile fits under wins.
_RANK_THRESHOLDS: tuple[tuple[float, RankLabel], ...] = (
    (10.0, RankLabel.TOP_10),
    (25.0, RankLabel.TOP_25),
    (50.0, RankLabel.TOP_50),
    (75.0, RankLabel.TOP_75),
)


def rank_label(percentile: float) -> RankLabel:
    """Map a percentile (0-100, lower is better) to its coarse bucket."""
    for ceiling, label in _RANK_THRESHOLDS:
        if percentile <= ceiling:
            return label
    return RankLabel.BOTTOM_25


def sort_population(population: Sequence[PerformanceResult]) -> list[PerformanceResult]:
    """Sort by percent change descending, then user_id ascending."""
    return sorted(population, key=lambda r: (-r.percent_change, r.user_id))


def compute_leaderboard_stats(
    user_id: str,
    user_return: float | None,
    population: Sequence[PerformanceResult],
) -> LeaderboardStats:
    """Rank one user within the population of eligible users.

    Args:
        user_id: The user to rank.
        user_return: The user's total return, or None if they have fewer
            than 2 snapshots.
        population: Total returns of every user with at least 2 snapshots.
            The target is added if it is eligible but missing.

    Returns:
        LeaderboardStats. Ineligible users get RankLabel.NOT_APPLICABLE,
        total_users=0 and None percent fields.
    """
    if user_return is None:
        return LeaderboardStats(
            user_percent_change=None,
            average_percent_change=None,
            user_rank=RankLabel.NOT_APPLICABLE,
            total_users=0,
        )

    others = [r for r in population if r.user_id != user_id]
    if not others:
        return LeaderboardStats(
            user_percent_change=user_return,
            average_percent_change=user_return,
            user_rank=RankLabel.TOP_100,
            total_users=1,
        )

    ranked = sort_population([*others, PerformanceResult(user_id, user_return)])
    total_users = len(ranked)
    average = sum(r.percent_change for r in ranked) / total_users

    position = next(i for i, r in enumerate(ranked, start=1) if r.user_id == user_id)
    percentile = position / total_users * 100

    return LeaderboardStats(
        user_percent_change=user_return,
        average_percent_change=average,
        user_rank=rank_label(percentile),
        total_users=total_users,
    )
