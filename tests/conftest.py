"""
Shared fixtures: an in-memory SQLite gateway, seeded users and a test client
wired to stub collaborators (no network).
"""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from config.settings import settings
from wfn24.db import Database
from wfn24.main import create_app
from wfn24.records import UserModel

ADMIN_EMAIL = "admin@wfn24.com"
ADMIN_PASSWORD = "admin-pass-123"
READER_EMAIL = "reader@wfn24.com"
READER_PASSWORD = "reader-pass-123"

ADMIN_AUTH = (ADMIN_EMAIL, ADMIN_PASSWORD)
READER_AUTH = (READER_EMAIL, READER_PASSWORD)


class FakeClock:
    """Naive-UTC clock that only moves when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 9, 14, 15, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class RecordingPublisher:
    """Stands in for RelayPublisher; keeps what would have been posted."""

    enabled = True

    def __init__(self, accept=True):
        self.accept = accept
        self.events = []

    def publish(self, channel, event):
        self.events.append((channel, event))
        return self.accept


class StubApiClient:
    """Canned API-Football answers for the web layer."""

    def __init__(self):
        self.live = [{"api_match_id": 1035037, "status": "live", "home_score": 1, "away_score": 0}]
        self.standings_calls = []

    def get_live_matches(self):
        return self.live

    def get_standings(self, league_id, season=None):
        self.standings_calls.append((league_id, season))
        return [{"position": 1, "team": {"id": 40, "name": "Liverpool", "logo": None}, "points": 12}]

    def cache_stats(self):
        return {"hits": 3, "misses": 1, "entries": 1}


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """bcrypt at cost 4 keeps the suite fast."""
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture
def db():
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def admin_user(db):
    users = UserModel(db)
    user_id = users.create({
        "username": "admin",
        "email": ADMIN_EMAIL,
        "password": ADMIN_PASSWORD,
        "first_name": "Admin",
        "last_name": "User",
        "role": "admin",
    })
    return users.find(user_id)


@pytest.fixture
def reader_user(db):
    users = UserModel(db)
    user_id = users.create({
        "username": "reader",
        "email": READER_EMAIL,
        "password": READER_PASSWORD,
    })
    return users.find(user_id)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def api_stub():
    return StubApiClient()


@pytest.fixture
def app(db, publisher, api_stub):
    return create_app(database=db, api_client=api_stub, publisher=publisher)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
