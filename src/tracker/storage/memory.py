"""In-memory repository, used for development and tests."""

import uuid
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from tracker.exceptions import DuplicateEmailError, SnapshotNotFoundError, UserNotFoundError
from tracker.models import Snapshot, User, UserSnapshotCount, utc_now
from tracker.storage.repository import SnapshotRepository


class InMemoryRepository(SnapshotRepository):
    """Dict-backed SnapshotRepository.

    Users are handed out as copies so callers cannot mutate stored state
    without going through save_user().
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._snapshots: dict[str, Snapshot] = {}

    async def get_user(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        return replace(user) if user is not None else None

    async def get_user_by_email(self, email: str) -> User | None:
        needle = email.strip().lower()
        for user in self._users.values():
            if user.email.lower() == needle:
                return replace(user)
        return None

    async def create_user(
        self,
        email: str,
        display_name: str | None = None,
        is_public: bool = False,
        is_admin: bool = False,
        user_id: str | None = None,
    ) -> User:
        if await self.get_user_by_email(email) is not None:
            raise DuplicateEmailError(f"email already registered: {email}")
        user = User(
            id=user_id or str(uuid.uuid4()),
            email=email.strip(),
            display_name=display_name,
            is_public=is_public,
            is_admin=is_admin,
        )
        self._users[user.id] = user
        return replace(user)

    async def save_user(self, user: User) -> None:
        if user.id not in self._users:
            raise UserNotFoundError(user.id)
        self._users[user.id] = replace(user)

    async def list_public_users(self) -> list[User]:
        return [replace(u) for u in self._users.values() if u.is_public]

    async def list_snapshots(self, user_id: str) -> list[Snapshot]:
        return [s for s in self._snapshots.values() if s.user_id == user_id]

    async def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        return self._snapshots.get(snapshot_id)

    async def add_snapshot(self, user_id: str, value: Decimal, date: datetime) -> Snapshot:
        snapshot = Snapshot(
            id=str(uuid.uuid4()),
            user_id=user_id,
            value=value,
            date=date,
            created_at=utc_now(),
        )
        self._snapshots[snapshot.id] = snapshot
        return snapshot

    async def delete_snapshot(self, snapshot_id: str) -> None:
        if self._snapshots.pop(snapshot_id, None) is None:
            raise SnapshotNotFoundError(snapshot_id)

    async def list_users_with_snapshot_counts(self) -> list[UserSnapshotCount]:
        counts = dict.fromkeys(self._users, 0)
        for snapshot in self._snapshots.values():
            counts[snapshot.user_id] = counts.get(snapshot.user_id, 0) + 1
        return [UserSnapshotCount(user_id=uid, snapshot_count=n) for uid, n in counts.items()]
