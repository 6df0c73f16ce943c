"""User and snapshot persistence behind the SnapshotRepository interface."""

from tracker.storage.memory import InMemoryRepository
from tracker.storage.repository import SnapshotRepository
from tracker.storage.sqlite import SqliteRepository

__all__ = ["InMemoryRepository", "SnapshotRepository", "SqliteRepository"]
