"""Custom exceptions for the portfolio tracker.

Analytics, market-data and storage exceptions all live here
to avoid circular imports between modules.
"""


class TrackerError(Exception):
    """Base exception for all tracker errors."""


class InsufficientDataError(TrackerError):
    """Raised when a value is required but fewer than two snapshots exist."""


class DegenerateBaselineError(TrackerError):
    """Raised when a percent change is requested against a zero baseline."""


class UpstreamFetchError(TrackerError):
    """Raised when a market data source cannot supply a usable series for a symbol."""


class SnapshotValidationError(TrackerError):
    """Raised when a submitted snapshot value or date is not acceptable."""


class SettingsValidationError(TrackerError):
    """Raised when a user settings update is not acceptable."""


class UserNotFoundError(TrackerError):
    """Raised when a user id does not resolve to a stored user."""


class SnapshotNotFoundError(TrackerError):
    """Raised when a snapshot id does not resolve to a stored snapshot."""


class DuplicateEmailError(TrackerError):
    """Raised when creating a user whose email is already registered."""


class PermissionDeniedError(TrackerError):
    """Raised when the acting user may not perform the requested change."""
