"""Write-side operations: snapshots, user settings and leaderboard moderation.

Snapshots are immutable; the only changes are recording a new one and its
owner deleting it. User settings cover display_name and is_public only.
is_admin cannot be changed here.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from tracker.exceptions import (
    DuplicateEmailError,
    PermissionDeniedError,
    SettingsValidationError,
    SnapshotNotFoundError,
    SnapshotValidationError,
    UserNotFoundError,
)
from tracker.logging import get_logger
from tracker.models import Snapshot, User
from tracker.storage.repository import SnapshotRepository

logger = get_logger(__name__)


def parse_snapshot_value(raw: str) -> Decimal:
    """Parse a submitted portfolio value into an exact Decimal.

    Raises:
        SnapshotValidationError: If empty, not a number, infinite/NaN, or negative.
    """
    text = raw.strip() if isinstance(raw, str) else ""
    if not text:
        raise SnapshotValidationError("Portfolio value is required")
    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise SnapshotValidationError("Please enter a valid positive number") from e
    if not value.is_finite() or value < 0:
        raise SnapshotValidationError("Please enter a valid positive number")
    return value


def normalize_snapshot_date(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so all stored dates are comparable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AccountService:
    """Mutating operations on a user's own data, plus admin moderation.

    Args:
        repository: User and snapshot storage.
        display_name_max_length: Upper bound for display names.
    """

    def __init__(
        self,
        repository: SnapshotRepository,
        display_name_max_length: int = 50,
    ) -> None:
        self._repository = repository
        self._display_name_max_length = display_name_max_length

    async def get_user(self, user_id: str) -> User:
        """Return the user or raise UserNotFoundError."""
        user = await self._repository.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def get_or_create_user(self, user_id: str, email: str | None = None) -> User:
        """Return the user, provisioning it on first sight.

        Identity is established upstream; the first request for an unknown
        id creates the account. Without an email the id stands in for the
        local part. A concurrent request that created the same id first
        wins.
        """
        user = await self._repository.get_user(user_id)
        if user is not None:
            return user

        address = (email or "").strip() or f"{user_id}@users.invalid"
        try:
            user = await self._repository.create_user(address, user_id=user_id)
        except DuplicateEmailError:
            existing = await self._repository.get_user(user_id)
            if existing is None:
                raise
            return existing
        logger.info("user_provisioned", user_id=user_id)
        return user

    async def list_snapshots(self, user_id: str) -> list[Snapshot]:
        """The user's snapshots as stored."""
        await self.get_user(user_id)
        return await self._repository.list_snapshots(user_id)

    async def record_snapshot(self, user_id: str, value: str, date: datetime) -> Snapshot:
        """Validate and store a new snapshot for the user."""
        await self.get_user(user_id)
        snapshot = await self._repository.add_snapshot(
            user_id,
            parse_snapshot_value(value),
            normalize_snapshot_date(date),
        )
        logger.info(
            "snapshot_recorded",
            user_id=user_id,
            snapshot_id=snapshot.id,
            date=snapshot.date.isoformat(),
        )
        return snapshot

    async def delete_snapshot(self, user_id: str, snapshot_id: str) -> None:
        """Delete one of the user's own snapshots."""
        snapshot = await self._repository.get_snapshot(snapshot_id)
        if snapshot is None:
            raise SnapshotNotFoundError(snapshot_id)
        if snapshot.user_id != user_id:
            raise PermissionDeniedError("snapshots can only be deleted by their owner")
        await self._repository.delete_snapshot(snapshot_id)
        logger.info("snapshot_deleted", user_id=user_id, snapshot_id=snapshot_id)

    async def update_settings(
        self,
        user_id: str,
        display_name: str | None = None,
        is_public: bool | None = None,
    ) -> User:
        """Update display name and/or leaderboard visibility.

        Arguments left as None are not changed. A blank display name clears
        it, so the leaderboard falls back to the email local part.
        """
        user = await self.get_user(user_id)

        if display_name is not None:
            name = display_name.strip()
            if len(name) > self._display_name_max_length:
                raise SettingsValidationError(
                    f"Display name must be at most {self._display_name_max_length} characters"
                )
            user.display_name = name or None

        if is_public is not None:
            user.is_public = is_public

        await self._repository.save_user(user)
        logger.info("user_settings_updated", user_id=user_id, is_public=user.is_public)
        return user

    async def remove_from_leaderboard(self, acting_user_id: str, target_user_id: str) -> User:
        """Admin action: hide a user from the public leaderboard.

        Only flips is_public; the user's snapshots are left untouched.
        """
        actor = await self.get_user(acting_user_id)
        if not actor.is_admin:
            raise PermissionDeniedError("admin access required")

        target = await self.get_user(target_user_id)
        target.is_public = False
        await self._repository.save_user(target)
        logger.info(
            "user_removed_from_leaderboard",
            admin_id=acting_user_id,
            user_id=target_user_id,
        )
        return target
