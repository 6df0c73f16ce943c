"""Public opt-in leaderboard.

Only users who opted in and have at least two snapshots are listed.
Entries are ordered by total return descending (user_id breaks ties) and
ranked 1..n without shared ranks.
"""

from collections.abc import Iterable

from tracker.models import PublicLeaderboardEntry, SnapshotPerformance, User


def resolve_display_name(user: User) -> str:
    """Stored display name if non-blank, else the local part of the email."""
    if user.display_name and user.display_name.strip():
        return user.display_name.strip()
    return user.email.split("@", 1)[0]


def build_public_leaderboard(
    candidates: Iterable[tuple[User, SnapshotPerformance | None]],
) -> list[PublicLeaderboardEntry]:
    """Rank opted-in users by total return.

    Args:
        candidates: (user, performance) pairs. Users that are not public or
            whose performance is None are skipped.

    Returns:
        Entries sorted by percent_change descending with 1-based ranks.
    """
    qualified = [
        (user, perf)
        for user, perf in candidates
        if user.is_public and perf is not None
    ]
    qualified.sort(key=lambda item: (-item[1].total_return_pct, item[0].id))

    return [
        PublicLeaderboardEntry(
            user_id=user.id,
            display_name=resolve_display_name(user),
            email=user.email,
            percent_change=perf.total_return_pct,
            current_value=perf.current_value,
            rank=i + 1,
        )
        for i, (user, perf) in enumerate(qualified)
    ]
