"""Async SQLite repository for users and snapshots.

Uses aiosqlite for non-blocking database operations with WAL mode
for concurrent read/write performance.

CRITICAL: Snapshot values are stored as TEXT to preserve Decimal precision,
restored as Decimal on read. Datetimes are stored as ISO-8601 TEXT.
"""

import os
import sqlite3
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Self

import aiosqlite

from tracker.exceptions import DuplicateEmailError, SnapshotNotFoundError, UserNotFoundError
from tracker.logging import get_logger
from tracker.models import Snapshot, User, UserSnapshotCount, utc_now
from tracker.storage.repository import SnapshotRepository

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
    display_name TEXT,
    is_public INTEGER NOT NULL DEFAULT 0,
    is_admin INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS snapshots (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    value TEXT NOT NULL,
    date TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""

_CREATE_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_snapshots_user_date
    ON snapshots(user_id, date);
"""

_USER_COLUMNS = "id, email, display_name, is_public, is_admin, created_at"
_SNAPSHOT_COLUMNS = "id, user_id, value, date, created_at"


def _row_to_user(row: tuple) -> User:
    return User(
        id=row[0],
        email=row[1],
        display_name=row[2],
        is_public=bool(row[3]),
        is_admin=bool(row[4]),
        created_at=datetime.fromisoformat(row[5]),
    )


def _row_to_snapshot(row: tuple) -> Snapshot:
    return Snapshot(
        id=row[0],
        user_id=row[1],
        value=Decimal(row[2]),
        date=datetime.fromisoformat(row[3]),
        created_at=datetime.fromisoformat(row[4]),
    )


class SqliteRepository(SnapshotRepository):
    """SnapshotRepository backed by a single aiosqlite connection.

    Usage:
        async with SqliteRepository("data/tracker.db") as repo:
            user = await repo.create_user("alice@example.com")
    """

    def __init__(self, db_path: str = "data/tracker.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open the connection, configure pragmas, and create the schema."""
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")
        await self._connection.execute("PRAGMA foreign_keys=ON")

        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.executescript(_CREATE_INDEXES_SQL)
        await self._ensure_schema_version()
        await self._connection.commit()

        logger.info("tracker_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("tracker_db_closed", db_path=self._db_path)

    async def _ensure_schema_version(self) -> None:
        cursor = await self.db.execute("SELECT version FROM schema_version LIMIT 1")
        if await cursor.fetchone() is None:
            await self.db.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            logger.info("schema_version_set", version=SCHEMA_VERSION)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()

    # ──────────────────────────────────────────────
    # Users
    # ──────────────────────────────────────────────

    async def get_user(self, user_id: str) -> User | None:
        cursor = await self.db.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
        )
        row = await cursor.fetchone()
        return _row_to_user(row) if row is not None else None

    async def get_user_by_email(self, email: str) -> User | None:
        cursor = await self.db.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = ?", (email.strip(),)
        )
        row = await cursor.fetchone()
        return _row_to_user(row) if row is not None else None

    async def create_user(
        self,
        email: str,
        display_name: str | None = None,
        is_public: bool = False,
        is_admin: bool = False,
        user_id: str | None = None,
    ) -> User:
        user = User(
            id=user_id or str(uuid.uuid4()),
            email=email.strip(),
            display_name=display_name,
            is_public=is_public,
            is_admin=is_admin,
        )
        try:
            await self.db.execute(
                f"INSERT INTO users ({_USER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    user.id,
                    user.email,
                    user.display_name,
                    int(user.is_public),
                    int(user.is_admin),
                    user.created_at.isoformat(),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateEmailError(f"email already registered: {email}") from e
        await self.db.commit()
        return user

    async def save_user(self, user: User) -> None:
        cursor = await self.db.execute(
            "UPDATE users SET display_name = ?, is_public = ?, is_admin = ? WHERE id = ?",
            (user.display_name, int(user.is_public), int(user.is_admin), user.id),
        )
        await self.db.commit()
        if cursor.rowcount == 0:
            raise UserNotFoundError(user.id)

    async def list_public_users(self) -> list[User]:
        cursor = await self.db.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE is_public = 1"
        )
        return [_row_to_user(row) for row in await cursor.fetchall()]

    # ──────────────────────────────────────────────
    # Snapshots
    # ──────────────────────────────────────────────

    async def list_snapshots(self, user_id: str) -> list[Snapshot]:
        cursor = await self.db.execute(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM snapshots WHERE user_id = ? ORDER BY date",
            (user_id,),
        )
        return [_row_to_snapshot(row) for row in await cursor.fetchall()]

    async def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        cursor = await self.db.execute(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM snapshots WHERE id = ?", (snapshot_id,)
        )
        row = await cursor.fetchone()
        return _row_to_snapshot(row) if row is not None else None

    async def add_snapshot(self, user_id: str, value: Decimal, date: datetime) -> Snapshot:
        snapshot = Snapshot(
            id=str(uuid.uuid4()),
            user_id=user_id,
            value=value,
            date=date,
            created_at=utc_now(),
        )
        await self.db.execute(
            f"INSERT INTO snapshots ({_SNAPSHOT_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
            (
                snapshot.id,
                snapshot.user_id,
                str(snapshot.value),
                snapshot.date.isoformat(),
                snapshot.created_at.isoformat(),
            ),
        )
        await self.db.commit()
        return snapshot

    async def delete_snapshot(self, snapshot_id: str) -> None:
        cursor = await self.db.execute("DELETE FROM snapshots WHERE id = ?", (snapshot_id,))
        await self.db.commit()
        if cursor.rowcount == 0:
            raise SnapshotNotFoundError(snapshot_id)

    async def list_users_with_snapshot_counts(self) -> list[UserSnapshotCount]:
        cursor = await self.db.execute(
            "SELECT u.id, COUNT(s.id) FROM users u "
            "LEFT JOIN snapshots s ON s.user_id = u.id "
            "GROUP BY u.id"
        )
        return [
            UserSnapshotCount(user_id=row[0], snapshot_count=row[1])
            for row in await cursor.fetchall()
        ]
