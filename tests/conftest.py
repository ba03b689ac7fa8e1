"""Shared pytest fixtures for the service layer and the Flask app."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Tuple

import mongomock
import pytest

# Ensure the application package is importable during tests.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from panchayat_api import database  # noqa: E402
from panchayat_api.errors import EmailDispatchError  # noqa: E402
from panchayat_api.main import create_app  # noqa: E402
from panchayat_api.services.file_storage import FileStore  # noqa: E402
from panchayat_api.services.otp_service import OtpService  # noqa: E402
from panchayat_api.storage import MemoryKeyValueStore  # noqa: E402

START_MILLIS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MILLIS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class RecordingSender:
    """Stands in for the OTP email sender and remembers what was sent."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self.fail = False

    def __call__(self, email: str, name: str, code: str) -> None:
        if self.fail:
            raise EmailDispatchError("Failed to send verification code. Please try again.")
        self.sent.append((email, name, code))

    @property
    def last_code(self) -> str:
        return self.sent[-1][2]


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch: pytest.MonkeyPatch):
    """Provide an isolated in-memory MongoDB database for each test."""
    test_db_name = "test_egram_panchayat"
    monkeypatch.setenv("ENABLE_MONGODB", "true")
    monkeypatch.setenv("MONGODB_DATABASE", test_db_name)

    client = mongomock.MongoClient()
    db = client[test_db_name]

    monkeypatch.setattr(database, "get_mongo_client", lambda: client)
    monkeypatch.setattr(database, "get_database", lambda: db)

    yield db

    client.drop_database(test_db_name)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def otp_service(memory_store, sender, clock) -> OtpService:
    return OtpService(memory_store, send_email=sender, clock=clock)


@pytest.fixture
def file_store(memory_store, clock) -> FileStore:
    return FileStore(memory_store, clock=clock)


@pytest.fixture
def app(memory_store, sender, clock):
    app = create_app(store=memory_store, send_email=sender, clock=clock)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
