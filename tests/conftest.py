"""Pytest configuration and shared fixtures."""

import os

# Settings are cached on first use; point them at throwaway locations first.
os.environ.setdefault("EXPENSEFLOW_DATABASE_URL", "sqlite://")
os.environ.setdefault("EXPENSEFLOW_SECRET_KEY", "test-secret-key")
os.environ.setdefault("EXPENSEFLOW_PUSH_GATEWAY_URL", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from expenseflow.api.deps import get_db, get_object_store
from expenseflow.core.rbac import Role
from expenseflow.core.security import create_access_token
from expenseflow.db.base import Base
from expenseflow.db import models  # noqa: F401
from expenseflow.services.storage import LocalObjectStore

from tests.factories import create_profile


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def staff(db_session):
    """One committed profile per role."""
    profiles = {role: create_profile(db_session, role=role) for role in Role}
    db_session.commit()
    return profiles


@pytest.fixture
def object_store(tmp_path):
    return LocalObjectStore(root_dir=str(tmp_path / "receipts"), base_url="/receipts")


@pytest.fixture
def client(db_session, object_store):
    """Test client bound to the per-test database."""
    from expenseflow.api.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: object_store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build a bearer header for a profile."""
    def _headers(profile):
        token = create_access_token(profile.id, role=profile.role)
        return {"Authorization": f"Bearer {token}"}
    return _headers
