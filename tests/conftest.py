"""
Shared pytest fixtures for the Shield test suite.

Strategy:
- Domain / application tests: JSON stores in tmp_path, or in-memory SQLite
  for the SQL store. The clock is a FakeClock, never the wall clock.
- API tests: FastAPI TestClient over an app assembled from the routers.
  DATABASE_URL is cleared so nothing reaches a real database.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# ---------------------------------------------------------------------------
# Ensure no real database or repo-local data is touched during the test run
# ---------------------------------------------------------------------------
os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production-123456")
os.environ.setdefault("SHIELD_DATA_DIR", tempfile.mkdtemp(prefix="shield_test_"))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shield.application.ip_throttle_service import IpThrottleService
from shield.application.login_protection import LoginProtectionService
from shield.application.spam_prevention_service import SpamPreventionService
from shield.domain.policy import ThrottlePolicy
from shield.infrastructure.database.connection import ManagedSessionFactory
from shield.infrastructure.database.models import Base
from shield.infrastructure.repositories.pg_throttle_repository import (
    PgIpThrottleRepository,
    PgSpamPreventionRepository,
)
from shield.infrastructure.repositories.throttle_repository import ThrottleRepository


class FakeClock:
    """Deterministic UTC clock. Call it to read, ``advance`` to move forward."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def audit_log_dir(monkeypatch, tmp_path):
    """Redirect the audit log to a temp directory for every test."""
    import shield.infrastructure.audit as audit_mod
    log_dir = tmp_path / "logs"
    monkeypatch.setattr(audit_mod, "LOG_DIR", log_dir)
    monkeypatch.setattr(audit_mod, "LOG_FILE", log_dir / "audit.log")
    return log_dir


@pytest.fixture
def clock():
    return FakeClock()


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

@pytest.fixture
def sql_session_factory():
    """In-memory SQLite shared across connections, schema created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield ManagedSessionFactory(sessionmaker(bind=engine, expire_on_commit=False))
    engine.dispose()


@pytest.fixture(params=["json", "sql"])
def ip_store(request, tmp_path):
    if request.param == "json":
        return ThrottleRepository(str(tmp_path / "ip_throttles.json"))
    return PgIpThrottleRepository(request.getfixturevalue("sql_session_factory"))


@pytest.fixture(params=["json", "sql"])
def spam_store(request, tmp_path):
    if request.param == "json":
        return ThrottleRepository(str(tmp_path / "spam_prevention.json"))
    return PgSpamPreventionRepository(request.getfixturevalue("sql_session_factory"))


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@pytest.fixture
def ip_throttle(ip_store, clock):
    return IpThrottleService(ip_store, ThrottlePolicy(5, 15), clock=clock)


@pytest.fixture
def spam_prevention(spam_store, clock):
    return SpamPreventionService(spam_store, ThrottlePolicy(5, 60), clock=clock)


@pytest.fixture
def json_ip_throttle(tmp_path, clock):
    return IpThrottleService(
        ThrottleRepository(str(tmp_path / "api_ip.json")), ThrottlePolicy(5, 15), clock=clock
    )


@pytest.fixture
def json_spam_prevention(tmp_path, clock):
    return SpamPreventionService(
        ThrottleRepository(str(tmp_path / "api_spam.json")), ThrottlePolicy(5, 60), clock=clock
    )


# ---------------------------------------------------------------------------
# FastAPI TestClient (JSON stores in tmp_path)
# ---------------------------------------------------------------------------

@pytest.fixture
def test_app(json_ip_throttle, json_spam_prevention):
    from fastapi import FastAPI
    from shield.api.guards import init_guards
    from shield.api.routes.admin_routes import router as admin_router, init_admin_routes
    from shield.api.routes.attempt_routes import router as attempt_router, init_attempt_routes

    app = FastAPI()
    init_guards(json_ip_throttle, json_spam_prevention)
    init_attempt_routes(LoginProtectionService(json_ip_throttle, json_spam_prevention))
    init_admin_routes(json_ip_throttle, json_spam_prevention)
    app.include_router(attempt_router)
    app.include_router(admin_router)
    return app


@pytest.fixture
def client(test_app):
    from fastapi.testclient import TestClient
    return TestClient(test_app)


@pytest.fixture
def admin_headers():
    from shield.infrastructure.auth.jwt_handler import create_access_token
    token = create_access_token("admin-uid", "operator", role="admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def service_headers():
    from shield.infrastructure.auth.jwt_handler import create_access_token
    token = create_access_token("auth-service", "auth-service", role="service")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def service_client(test_app, service_headers):
    """TestClient that authenticates as the calling auth service."""
    from fastapi.testclient import TestClient
    c = TestClient(test_app)
    c.headers.update(service_headers)
    return c
