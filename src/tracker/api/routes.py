"""JSON API endpoints for snapshots, performance, leaderboards and market indices.

The caller is identified by the X-User-Id header (plus X-User-Email when an
account is first created); verifying who sent it is the job of whatever
sits in front of this API. Decimal values are returned as strings,
percent values as floats, and "no data" as null.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from tracker.models import (
    AlignedPoint,
    LeaderboardStats,
    MarketSeries,
    PublicLeaderboardEntry,
    SeriesPoint,
    Snapshot,
    User,
)

router = APIRouter()


class SnapshotIn(BaseModel):
    """Body of POST /portfolio/entries."""

    value: str = Field(description="Portfolio value as a decimal string")
    date: datetime


class SettingsIn(BaseModel):
    """Body of PATCH /user/settings."""

    display_name: str | None = None
    is_public: bool | None = None


class RemoveFromLeaderboardIn(BaseModel):
    """Body of POST /admin/remove-from-leaderboard."""

    user_id: str


async def _caller_id(request: Request) -> str:
    """Resolve the caller from X-User-Id, creating the account on first sight."""
    user_id = request.headers.get("x-user-id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    await request.app.state.account_service.get_or_create_user(
        user_id, request.headers.get("x-user-email")
    )
    return user_id


def _decimal_or_none(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _snapshot_json(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "id": snapshot.id,
        "user_id": snapshot.user_id,
        "value": str(snapshot.value),
        "date": snapshot.date.isoformat(),
        "created_at": snapshot.created_at.isoformat(),
    }


def _user_settings_json(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "is_public": user.is_public,
        "is_admin": user.is_admin,
    }


def _stats_json(stats: LeaderboardStats) -> dict[str, Any]:
    return {
        "user_percent_change": stats.user_percent_change,
        "average_percent_change": stats.average_percent_change,
        "user_rank": stats.user_rank.value,
        "total_users": stats.total_users,
    }


def _entry_json(entry: PublicLeaderboardEntry) -> dict[str, Any]:
    return {
        "rank": entry.rank,
        "user_id": entry.user_id,
        "display_name": entry.display_name,
        "email": entry.email,
        "percent_change": entry.percent_change,
        "current_value": str(entry.current_value),
    }


def _market_json(series: MarketSeries) -> dict[str, Any]:
    return {
        "symbol": series.symbol,
        "name": series.name,
        "data": [
            {"date": p.date.isoformat(), "percent_change": p.percent_change}
            for p in series.points
        ],
    }


def _points_json(points: list[SeriesPoint] | list[AlignedPoint]) -> list[dict[str, Any]]:
    return [{"date": p.date.isoformat(), "percent_change": p.percent_change} for p in points]


# ──────────────────────────────────────────────
# Portfolio snapshots
# ──────────────────────────────────────────────


@router.get("/portfolio/entries")
async def list_entries(request: Request) -> JSONResponse:
    """The caller's snapshots, ascending by date."""
    user_id = await _caller_id(request)
    snapshots = await request.app.state.account_service.list_snapshots(user_id)
    snapshots.sort(key=lambda s: (s.date, s.created_at, s.id))
    return JSONResponse(content=[_snapshot_json(s) for s in snapshots])


@router.post("/portfolio/entries", status_code=201)
async def create_entry(request: Request, body: SnapshotIn) -> JSONResponse:
    """Record a snapshot for the caller."""
    user_id = await _caller_id(request)
    snapshot = await request.app.state.account_service.record_snapshot(
        user_id, body.value, body.date
    )
    return JSONResponse(content=_snapshot_json(snapshot), status_code=201)


@router.delete("/portfolio/entries/{snapshot_id}", status_code=204)
async def delete_entry(request: Request, snapshot_id: str) -> Response:
    """Delete one of the caller's snapshots."""
    user_id = await _caller_id(request)
    await request.app.state.account_service.delete_snapshot(user_id, snapshot_id)
    return Response(status_code=204)


@router.get("/portfolio/recent")
async def recent_entries(request: Request) -> JSONResponse:
    """Newest snapshots with change from the previous one."""
    user_id = await _caller_id(request)
    entries = await request.app.state.performance_service.recent_entries(user_id)
    return JSONResponse(content=[
        {**_snapshot_json(e.snapshot), "change_pct": e.change_pct}
        for e in entries
    ])


@router.get("/portfolio/summary")
async def portfolio_summary(request: Request) -> JSONResponse:
    """Dashboard cards: current value, total and recent returns."""
    user_id = await _caller_id(request)
    summary = await request.app.state.performance_service.get_dashboard_summary(user_id)
    return JSONResponse(content={
        "current_value": _decimal_or_none(summary.current_value),
        "total_return_pct": summary.total_return_pct,
        "recent_change_pct": summary.recent_change_pct,
        "snapshot_count": summary.snapshot_count,
    })


@router.get("/portfolio/series")
async def portfolio_series(request: Request) -> JSONResponse:
    """The caller's percent series from their first snapshot."""
    user_id = await _caller_id(request)
    points = await request.app.state.performance_service.portfolio_series(user_id)
    return JSONResponse(content=_points_json(points))


@router.get("/portfolio/compare/{symbol}")
async def compare_to_index(request: Request, symbol: str) -> JSONResponse:
    """An index aligned to the caller's snapshot dates; null marks missing days."""
    user_id = await _caller_id(request)
    aligned = await request.app.state.performance_service.compare_to_index(user_id, symbol)
    if aligned is None:
        raise HTTPException(status_code=404, detail=f"No market data for {symbol}")
    return JSONResponse(content=_points_json(aligned))


# ──────────────────────────────────────────────
# Market and leaderboards
# ──────────────────────────────────────────────


@router.get("/market/indices")
async def market_indices(request: Request) -> JSONResponse:
    """Cached index series (refreshed at most once per TTL)."""
    series = await request.app.state.performance_service.get_market_series()
    return JSONResponse(content=[_market_json(s) for s in series])


@router.get("/leaderboard")
async def leaderboard_stats(request: Request) -> JSONResponse:
    """The caller's percentile bucket among all ranked users."""
    user_id = await _caller_id(request)
    stats = await request.app.state.performance_service.compute_leaderboard_stats(user_id)
    return JSONResponse(content=_stats_json(stats))


@router.get("/leaderboard/public")
async def public_leaderboard(request: Request) -> JSONResponse:
    """Opt-in leaderboard, best total return first."""
    entries = await request.app.state.performance_service.build_public_leaderboard()
    return JSONResponse(content=[_entry_json(e) for e in entries])


# ──────────────────────────────────────────────
# Settings and admin
# ──────────────────────────────────────────────


@router.get("/user/settings")
async def get_settings(request: Request) -> JSONResponse:
    user_id = await _caller_id(request)
    user = await request.app.state.account_service.get_user(user_id)
    return JSONResponse(content=_user_settings_json(user))


@router.patch("/user/settings")
async def update_settings(request: Request, body: SettingsIn) -> JSONResponse:
    """Change display name and/or public leaderboard visibility."""
    user_id = await _caller_id(request)
    user = await request.app.state.account_service.update_settings(
        user_id,
        display_name=body.display_name,
        is_public=body.is_public,
    )
    return JSONResponse(content=_user_settings_json(user))


@router.post("/admin/remove-from-leaderboard")
async def remove_from_leaderboard(
    request: Request, body: RemoveFromLeaderboardIn
) -> JSONResponse:
    """Admin only: hide a user from the public leaderboard."""
    user_id = await _caller_id(request)
    user = await request.app.state.account_service.remove_from_leaderboard(
        user_id, body.user_id
    )
    return JSONResponse(content=_user_settings_json(user))
