"""Percent-change series and cross-series alignment.

All ratios are computed on Decimal values; the result is converted to float
only once, at the end of percent_change(). Alignment between two
independently sampled series happens at calendar-day granularity and never
fabricates a value for a day the reference series does not have.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime, timezone
from decimal import Decimal

from tracker.exceptions import DegenerateBaselineError
from tracker.models import AlignedPoint, BaselineMode, SeriesPoint, Snapshot, ValuePoint

_HUNDRED = Decimal("100")


def to_day(value: date) -> date:
    """Reduce a date or datetime to its calendar day.

    Aware datetimes are converted to UTC first so a snapshot taken late in
    the evening in one timezone lands on the same day as the market close
    it is compared against.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def percent_change(value: Decimal, baseline: Decimal) -> float:
    """Return (value - baseline) / baseline * 100 as a float.

    Raises:
        DegenerateBaselineError: If baseline is zero.
    """
    if baseline == 0:
        raise DegenerateBaselineError("percent change is undefined for a zero baseline")
    return float((value - baseline) / baseline * _HUNDRED)


def sort_snapshots(snapshots: Iterable[Snapshot]) -> list[Snapshot]:
    """Sort snapshots ascending by date.

    Same-date snapshots are ordered by created_at, then id, so repeated
    calls over the same input always agree.
    """
    return sorted(snapshots, key=lambda s: (s.date, s.created_at, s.id))


def snapshot_points(snapshots: Iterable[Snapshot]) -> list[ValuePoint]:
    """Convert snapshots into chronologically ordered value points."""
    return [ValuePoint(date=to_day(s.date), value=s.value) for s in sort_snapshots(snapshots)]


def percent_series(
    points: Iterable[ValuePoint],
    baseline: Decimal | None = None,
) -> list[SeriesPoint]:
    """Convert a value series into percent changes against a baseline.

    Args:
        points: Dated values in any order; they are sorted ascending first.
        baseline: Explicit baseline value. Defaults to the value of the
            chronologically first point, which then yields exactly 0.0.

    Returns:
        Percent-change points ascending by date. Empty for empty input.

    Raises:
        DegenerateBaselineError: If the baseline value is zero.
    """
    ordered = sorted(points, key=lambda p: p.date)
    if not ordered:
        return []

    base = ordered[0].value if baseline is None else baseline
    return [
        SeriesPoint(date=p.date, percent_change=percent_change(p.value, base))
        for p in ordered
    ]


def align_series(
    primary: Sequence[ValuePoint],
    reference: Sequence[ValuePoint],
    baseline_mode: BaselineMode = BaselineMode.PRIMARY_START,
    baseline: Decimal | None = None,
) -> list[AlignedPoint]:
    """Express the reference series on the primary series' dates.

    For every primary point the reference value observed on the same
    calendar day is converted to a percent change against the chosen
    baseline. Days the reference lacks come back with percent_change=None.

    Args:
        primary: The series whose dates drive the output (e.g. snapshots).
        reference: The independently sampled series (e.g. an index).
        baseline_mode: SERIES_START measures against the reference's own
            earliest value; PRIMARY_START against the reference value on the
            primary's first date (all points are missing if it has none).
        baseline: Explicit baseline value, overriding baseline_mode.

    Returns:
        One AlignedPoint per primary point, ascending by date.

    Raises:
        DegenerateBaselineError: If the resolved baseline is zero.
    """
    ordered_primary = sorted(primary, key=lambda p: p.date)
    if not ordered_primary:
        return []

    lookup: dict[date, Decimal] = {}
    for point in sorted(reference, key=lambda p: p.date):
        # last observation of a day wins
        lookup[to_day(point.date)] = point.value

    days = [to_day(p.date) for p in ordered_primary]

    base = baseline
    if base is None and lookup:
        if baseline_mode is BaselineMode.SERIES_START:
            base = lookup[min(lookup)]
        else:
            base = lookup.get(days[0])

    if base is None:
        return [AlignedPoint(date=day, percent_change=None) for day in days]
    if base == 0:
        raise DegenerateBaselineError("reference baseline is zero")

    aligned: list[AlignedPoint] = []
    for day in days:
        value = lookup.get(day)
        aligned.append(
            AlignedPoint(
                date=day,
                percent_change=None if value is None else percent_change(value, base),
            )
        )
    return aligned
