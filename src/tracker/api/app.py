"""FastAPI application factory for the portfolio tracker API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tracker.api import routes
from tracker.exceptions import (
    DuplicateEmailError,
    PermissionDeniedError,
    SettingsValidationError,
    SnapshotNotFoundError,
    SnapshotValidationError,
    TrackerError,
    UserNotFoundError,
)
from tracker.logging import bind_request_context, get_logger

logger = get_logger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[TrackerError], int], ...] = (
    (SnapshotValidationError, 400),
    (SettingsValidationError, 400),
    (PermissionDeniedError, 403),
    (UserNotFoundError, 404),
    (SnapshotNotFoundError, 404),
    (DuplicateEmailError, 409),
)


async def _tracker_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Translate service-layer errors into JSON error responses."""
    status = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break
    if status == 500:
        logger.error("unhandled_tracker_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"error": "Internal error"})
    logger.info("request_rejected", path=request.url.path, status=status, error=str(exc))
    return JSONResponse(status_code=status, content={"error": str(exc)})


def create_app(
    performance_service: Any = None,
    account_service: Any = None,
    lifespan: Any = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        performance_service: PerformanceService for read endpoints.
        account_service: AccountService for write endpoints.
        lifespan: Optional async context manager for startup/shutdown.
            main.py uses it to open and close the repository and source.

    Returns:
        Configured FastAPI application with routes under /api.
    """
    app = FastAPI(
        title="Portfolio Tracker API",
        description="Portfolio snapshots, performance, leaderboards and index comparison",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.performance_service = performance_service
    app.state.account_service = account_service

    @app.middleware("http")
    async def request_context(request: Request, call_next: Any) -> Any:
        bind_request_context(
            path=request.url.path,
            method=request.method,
            user_id=request.headers.get("x-user-id"),
        )
        return await call_next(request)

    app.add_exception_handler(TrackerError, _tracker_error_handler)
    app.include_router(routes.router, prefix="/api")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app
