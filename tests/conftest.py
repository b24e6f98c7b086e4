"""Shared fixtures.

Environment variables are set before any ``app`` import so that the settings
dataclass and the SQLAlchemy engine pick them up.
"""

import os

os.environ["JWT_SECRET"] = "test-secret-for-session-tests"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_ENABLED"] = "false"
os.environ["SESSION_TTL_SECONDS"] = "3600"

from datetime import datetime, timedelta, timezone
import uuid

import fakeredis
import pytest
from fastapi.testclient import TestClient

from app.database import Base, engine, init_db
from app.schemas.sessions import Session
from app.services.session_store import SessionStore
from app.services.sessions import SessionService


@pytest.fixture
def redis_client():
    client = fakeredis.FakeRedis(decode_responses=True)
    client.flushall()
    yield client
    client.flushall()


@pytest.fixture
def store(redis_client):
    return SessionStore(redis_client)


@pytest.fixture
def service(store):
    return SessionService(store, ttl_seconds=3600)


@pytest.fixture
def make_session():
    def _make(user_id="1", ttl=timedelta(hours=1), **overrides):
        now = datetime.now(timezone.utc)
        session_id = overrides.pop("session_id", uuid.uuid4().hex)
        values = dict(
            session_id=session_id,
            user_id=user_id,
            token=f"token-{session_id}",
            created_at=now,
            last_activity=now,
            expires_at=now + ttl,
            user_agent="pytest",
            ip_address="127.0.0.1",
        )
        values.update(overrides)
        return Session(**values)

    return _make


@pytest.fixture
def client(redis_client):
    from app.main import app

    init_db()
    app.state.redis = redis_client
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.redis = None
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def register_and_login(client):
    def _login(email="rider@example.com", password="safe-riding-1", user_agent="laptop"):
        response = client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "full_name": "Rider"},
        )
        assert response.status_code in (201, 400)
        response = client.post(
            "/api/auth/login",
            json={"email": email, "password": password},
            headers={"User-Agent": user_agent},
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _login
