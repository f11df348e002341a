"""Pytest fixtures."""

import os

# Point settings at the test database before any proxalert module loads them
os.environ.setdefault("PROXALERT_DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("PROXALERT_JWT_SECRET", "test-secret")

import threading  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from proxalert import models  # noqa: E402,F401 - register for create_all
from proxalert.core.config import Settings  # noqa: E402
from proxalert.db.base import Base  # noqa: E402
from proxalert.db.session import SessionLocal, engine as db_engine  # noqa: E402
from proxalert.main import app  # noqa: E402
from proxalert.services.engine import ProximityEngine  # noqa: E402
from proxalert.services.memory_stores import (  # noqa: E402
    InMemoryAlertStore,
    InMemoryContactDirectory,
    InMemoryHistoryStore,
    InMemoryLocationStore,
    InMemoryPairStateStore,
)
from proxalert.services.types import DeliveryOutcome  # noqa: E402


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class RecordingPushChannel:
    """Records every push. Recipients can be made to fail or have no channel."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.pushes: list[tuple[int, dict]] = []
        self.failing: set[int] = set()
        self.offline: set[int] = set()

    def push(self, recipient_id: int, payload: dict) -> DeliveryOutcome:
        with self._lock:
            self.pushes.append((recipient_id, payload))
        if recipient_id in self.failing:
            raise RuntimeError(f"socket closed for {recipient_id}")
        if recipient_id in self.offline:
            return DeliveryOutcome.no_channel
        return DeliveryOutcome.ok

    def to(self, recipient_id: int, kind: str | None = None) -> list[dict]:
        with self._lock:
            return [
                p for rid, p in self.pushes
                if rid == recipient_id and (kind is None or p.get("type") == kind)
            ]

    def of_type(self, kind: str) -> list[tuple[int, dict]]:
        with self._lock:
            return [(rid, p) for rid, p in self.pushes if p.get("type") == kind]


@pytest.fixture(scope="session")
def setup_db():
    """Create tables once for test session."""
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)
    yield
    Base.metadata.drop_all(bind=db_engine)


@pytest.fixture
def db_session(setup_db):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(setup_db):
    """Test client running the app lifespan (engine start/stop)."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def channel():
    return RecordingPushChannel()


@pytest.fixture
def directory():
    return InMemoryContactDirectory()


@pytest.fixture
def history():
    return InMemoryHistoryStore()


@pytest.fixture
def alerts():
    return InMemoryAlertStore()


@pytest.fixture
def engine(directory, history, alerts, channel, clock):
    """Engine over in-memory stores with default thresholds."""
    eng = ProximityEngine(
        Settings(),
        directory=directory,
        locations=InMemoryLocationStore(),
        history=history,
        alerts=alerts,
        pair_states=InMemoryPairStateStore(),
        channel=channel,
        clock=clock,
    )
    yield eng
    eng.close()
