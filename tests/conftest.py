"""
tests/conftest.py -- Shared test fixtures for Postboard.

This module provides:
  - FakeClock: a settable clock for the SQLite key-value backend, so session
    expiry can be tested by moving time forward instead of sleeping
  - db / user_store / post_store / kv / session_store / gate: unit-level
    fixtures on fresh in-memory stores
  - api: an ApiHarness wrapping a TestClient whose lifespan is swapped for
    one that wires isolated test stores into app.state

Design: the API fixtures use named shared-memory SQLite URIs (not plain
:memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

BCRYPT_ROUNDS must be set before any auth module import: auth/passwords.py
hashes its timing dummy at import time with the configured cost.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before importing auth/ so bcrypt runs at minimum cost.
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.gate import AuthGate
from auth.models import User
from auth.passwords import hash_password
from auth.sessions import SessionStore
from auth.store import UserStore
from cache.store import SQLiteKeyValueStore
from core.db import Database
from posts.store import PostStore

TEST_USERNAME = "testuser"
TEST_PASSWORD = "password123"  # nosec B105 -- fixture credential


class FakeClock:
    """Monotonic-enough clock for tests. Starts at an arbitrary epoch second."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.close()


@pytest.fixture
def user_store(db: Database) -> UserStore:
    return UserStore(db)


@pytest.fixture
def post_store(db: Database) -> PostStore:
    return PostStore(db)


@pytest.fixture
def test_user_id(user_store: UserStore) -> int:
    return user_store.create_user(User(username=TEST_USERNAME, password_hash=hash_password(TEST_PASSWORD)))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv(clock: FakeClock) -> Generator[SQLiteKeyValueStore, None, None]:
    store = SQLiteKeyValueStore(":memory:", clock=clock)
    yield store
    store.close()


@pytest.fixture
def session_store(kv: SQLiteKeyValueStore) -> SessionStore:
    return SessionStore(kv, ttl_seconds=3600)


@pytest.fixture
def gate(user_store: UserStore, session_store: SessionStore, test_user_id: int) -> AuthGate:
    return AuthGate(user_store, session_store)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    """Everything an API test may need to reach past the HTTP surface."""

    client: TestClient
    db: Database
    users: UserStore
    kv: SQLiteKeyValueStore
    clock: FakeClock
    user_id: int

    def login(self, username: str = TEST_USERNAME, password: str = TEST_PASSWORD) -> str:
        resp = self.client.post("/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()["session_id"]


def _patch_lifespan(db: Database, kv: SQLiteKeyValueStore, ttl_seconds: int):
    """Return an async context manager that replaces the real lifespan.

    Mirrors the production wiring in api/main.py with test stores, and skips
    seeding and connectivity checks. The purge task is a long-sleeping
    coroutine so shutdown can cancel a real asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        user_store = UserStore(db)
        session_store = SessionStore(kv, ttl_seconds=ttl_seconds)
        app.state.db = db
        app.state.user_store = user_store
        app.state.post_store = PostStore(db)
        app.state.kv_store = kv
        app.state.session_store = session_store
        app.state.auth_gate = AuthGate(user_store, session_store)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture
def api() -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness backed by fresh, isolated stores.

    The seeded account is testuser / password123 and sessions live for 24h
    on the harness clock.
    """
    db_url = f"sqlite:///file:test_api_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    db = Database(db_url)
    db.create_all()
    users = UserStore(db)
    uid = users.create_user(User(username=TEST_USERNAME, password_hash=hash_password(TEST_PASSWORD)))

    clock = FakeClock()
    kv = SQLiteKeyValueStore(":memory:", clock=clock)

    app.router.lifespan_context = _patch_lifespan(db, kv, ttl_seconds=24 * 60 * 60)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(client=client, db=db, users=users, kv=kv, clock=clock, user_id=uid)

    kv.close()
    db.close()
