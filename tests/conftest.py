"""Shared test fixtures for the queue service."""
import os
import tempfile

# Point the app at a throwaway SQLite file before database.py is imported
_DB_DIR = tempfile.mkdtemp(prefix="queue-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'queue.db')}"

from datetime import datetime, timedelta, timezone

import pytest

import models  # noqa: F401  registers queue_entries on Base
from database import Base, SessionLocal, engine
from core.entry_store import EntryStore
from core.queue_manager import QueueManager


class FakeClock:
    """Deterministic clock for activation timestamps"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def naive(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    return value.replace(tzinfo=None)


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(db) -> EntryStore:
    return EntryStore(db)


@pytest.fixture
def manager(store, clock) -> QueueManager:
    return QueueManager(store, clock=clock)
