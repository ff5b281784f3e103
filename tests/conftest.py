"""Shared fixtures for the marketplace-catalog test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from marketplace_catalog.control_plane.audit_trail import AuditTrail
from marketplace_catalog.control_plane.auth import AuthService
from marketplace_catalog.control_plane.pipeline import CatalogPipeline
from marketplace_catalog.control_plane.session import Session
from marketplace_catalog.core.clock import SimClock
from marketplace_catalog.core.enums import Role
from marketplace_catalog.core.models import User
from marketplace_catalog.observability.metrics import MetricsCollector
from marketplace_catalog.storage.file_store import FileProductStore, FileUserStore
from marketplace_catalog.storage.memory import InMemoryProductStore, InMemoryUserStore
from marketplace_catalog.storage.sql.connection import (
    create_all,
    create_engine,
    create_session_factory,
)
from marketplace_catalog.storage.sql.repos import SqlProductStore, SqlUserStore

BACKENDS = ["memory", "file", "sql"]


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

@pytest.fixture
def sim_clock() -> SimClock:
    return SimClock(start=datetime(2024, 6, 1, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Stores (one of each backend)
# ---------------------------------------------------------------------------

@pytest.fixture
def sql_factory():
    engine = create_engine("sqlite://")
    create_all(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture(params=BACKENDS)
def product_store(request, sim_clock, tmp_path: Path):
    """Every product backend, for the shared store contract."""
    if request.param == "memory":
        return InMemoryProductStore(clock=sim_clock)
    if request.param == "file":
        return FileProductStore(tmp_path / "products.txt", clock=sim_clock)
    return SqlProductStore(request.getfixturevalue("sql_factory"), clock=sim_clock)


@pytest.fixture(params=BACKENDS)
def user_store(request, tmp_path: Path):
    if request.param == "memory":
        return InMemoryUserStore()
    if request.param == "file":
        return FileUserStore(tmp_path / "users.txt")
    return SqlUserStore(request.getfixturevalue("sql_factory"))


# ---------------------------------------------------------------------------
# Control plane
# ---------------------------------------------------------------------------

@pytest.fixture
def audit(sim_clock) -> AuditTrail:
    return AuditTrail(clock=sim_clock)


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def memory_products(sim_clock) -> InMemoryProductStore:
    return InMemoryProductStore(clock=sim_clock)


@pytest.fixture
def memory_users() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def pipeline(memory_products, audit, metrics) -> CatalogPipeline:
    return CatalogPipeline(memory_products, audit, metrics)


@pytest.fixture
def auth(memory_users, audit, metrics) -> AuthService:
    return AuthService(memory_users, audit, metrics)


@pytest.fixture
def admin_user(memory_users) -> User:
    return memory_users.save(User(username="admin", password="admin123", role=Role.ADMIN))


@pytest.fixture
def regular_user(memory_users) -> User:
    return memory_users.save(User(username="alice", password="alice123"))


@pytest.fixture
def anonymous() -> Session:
    return Session()


@pytest.fixture
def admin_session(auth, admin_user) -> Session:
    session = Session()
    auth.login(session, "admin", "admin123").unwrap()
    return session


@pytest.fixture
def user_session(auth, regular_user) -> Session:
    session = Session()
    auth.login(session, "alice", "alice123").unwrap()
    return session
