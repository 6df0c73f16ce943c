"""Service layer -- read-side analytics facade and write-side account operations."""

from tracker.services.account_service import AccountService
from tracker.services.performance_service import PerformanceService

__all__ = ["AccountService", "PerformanceService"]
