"""
tests/conftest.py -- Shared test fixtures for TaskGuard unit and integration tests.

This module provides:
  - engine: a fresh in-memory SQLite engine per test (unit tests)
  - seeded: two organizations and five users covering every role
  - api: ApiHarness wrapping a TestClient over the real app with a patched
    lifespan, plus a bearer token for each seeded user

Design: integration tests use a named shared-memory SQLite URI
(file:name?mode=memory&cache=shared&uri=true), not plain :memory:, because
TestClient runs sync route handlers in a thread pool. Plain :memory: DBs are
per-connection and would present a blank schema to each worker thread.

DEBUG, ALLOWED_HOSTS and LOGIN_RATE_LIMIT must be set before any core/auth/api
import, because get_settings() is cached on first use.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app, wire_services
from audit.store import AuditLog
from auth.models import ActorIdentity, Organization, Role, User
from auth.store import UserStore
from auth.tokens import TokenIssuer, hash_password
from core.config import get_settings
from core.database import create_db_engine
from tasks.service import TaskService
from tasks.store import TaskStore

PASSWORD = "correct-horse"

_db_counter = itertools.count()


@dataclass
class Seeded:
    """Handles on the seeded identities.

    org1: alice (ADMIN), erin (ADMIN), bob (VIEWER), dave (OWNER)
    org2: carol (ADMIN)
    """

    org1: int
    org2: int
    users: dict[str, ActorIdentity]

    def __getitem__(self, username: str) -> ActorIdentity:
        return self.users[username]


def seed_identities(user_store: UserStore) -> Seeded:
    # One hash for everyone keeps bcrypt cost out of every fixture.
    hashed = hash_password(PASSWORD)
    org1 = user_store.create_organization(Organization(name="Org One"))
    org2 = user_store.create_organization(Organization(name="Org Two"))
    layout = [
        ("alice", Role.ADMIN, org1),
        ("erin", Role.ADMIN, org1),
        ("bob", Role.VIEWER, org1),
        ("dave", Role.OWNER, org1),
        ("carol", Role.ADMIN, org2),
    ]
    users: dict[str, ActorIdentity] = {}
    for username, role, org_id in layout:
        uid = user_store.create_user(
            User(username=username, hashed_password=hashed, role=role, organization_id=org_id)
        )
        users[username] = ActorIdentity(user_id=uid, username=username, role=role, organization_id=org_id)
    return Seeded(org1=org1, org2=org2, users=users)


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = create_db_engine("sqlite:///:memory:")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def task_store(engine: Engine) -> TaskStore:
    return TaskStore(engine)


@pytest.fixture
def audit_log(engine: Engine) -> AuditLog:
    return AuditLog(engine)


@pytest.fixture
def task_service(task_store: TaskStore, audit_log: AuditLog) -> TaskService:
    return TaskService(task_store, audit_log)


@pytest.fixture
def seeded(user_store: UserStore) -> Seeded:
    return seed_identities(user_store)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer("x" * 48, expire_seconds=3600)


# ---------------------------------------------------------------------------
# Integration fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(engine: Engine):
    """Return a lifespan that wires the app to the given test engine."""

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, engine)
        yield

    return test_lifespan


@dataclass
class ApiHarness:
    client: TestClient
    seeded: Seeded
    tokens: dict[str, str]
    user_store: UserStore
    audit_log: AuditLog
    task_store: TaskStore

    def headers(self, username: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.tokens[username]}"}


@pytest.fixture
def api() -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness over a fresh shared-memory database.

    Function-scoped so each test starts with an empty audit log and no tasks.
    Tokens are issued with the app's own TokenIssuer settings.
    """
    url = f"sqlite:///file:taskguard_api_{next(_db_counter)}?mode=memory&cache=shared&uri=true"
    engine = create_db_engine(url)
    user_store = UserStore(engine)
    seeded = seed_identities(user_store)
    settings = get_settings()
    issuer = TokenIssuer(settings.secret_key, settings.token_expire_seconds)
    tokens = {name: issuer.issue(identity) for name, identity in seeded.users.items()}

    app.router.lifespan_context = _patch_lifespan(engine)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(
            client=client,
            seeded=seeded,
            tokens=tokens,
            user_store=user_store,
            audit_log=AuditLog(engine),
            task_store=TaskStore(engine),
        )
    engine.dispose()
