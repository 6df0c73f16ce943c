"""Abstract data-access interface for users and snapshots.

Analytics and services depend only on this contract; the storage
mechanics (in-memory, SQLite) live in the concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal

from tracker.models import Snapshot, User, UserSnapshotCount


class SnapshotRepository(ABC):
    """Abstract base class for user and snapshot storage."""

    # ──────────────────────────────────────────────
    # Users
    # ──────────────────────────────────────────────

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None:
        """Return the user with this id, or None."""
        ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User | None:
        """Return the user with this email (case-insensitive), or None."""
        ...

    @abstractmethod
    async def create_user(
        self,
        email: str,
        display_name: str | None = None,
        is_public: bool = False,
        is_admin: bool = False,
        user_id: str | None = None,
    ) -> User:
        """Create a user. A random id is generated when user_id is None.

        Raises:
            DuplicateEmailError: If the email is already registered.
        """
        ...

    @abstractmethod
    async def save_user(self, user: User) -> None:
        """Persist changes to an existing user's mutable fields.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        ...

    @abstractmethod
    async def list_public_users(self) -> list[User]:
        """Return every user with is_public set."""
        ...

    # ──────────────────────────────────────────────
    # Snapshots
    # ──────────────────────────────────────────────

    @abstractmethod
    async def list_snapshots(self, user_id: str) -> list[Snapshot]:
        """Return a user's snapshots (order is not guaranteed)."""
        ...

    @abstractmethod
    async def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        """Return one snapshot by id, or None."""
        ...

    @abstractmethod
    async def add_snapshot(self, user_id: str, value: Decimal, date: datetime) -> Snapshot:
        """Record a new snapshot for a user."""
        ...

    @abstractmethod
    async def delete_snapshot(self, snapshot_id: str) -> None:
        """Remove a snapshot.

        Raises:
            SnapshotNotFoundError: If it does not exist.
        """
        ...

    @abstractmethod
    async def list_users_with_snapshot_counts(self) -> list[UserSnapshotCount]:
        """Return every user id with its number of snapshots (including 0)."""
        ...

    async def close(self) -> None:
        """Clean up resources (e.g., database connections)."""
