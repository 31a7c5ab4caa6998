"""Shared fixtures: an in-memory database per test and an API client bound to it."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from taskflow.database import create_tables, get_db
from taskflow.main import app
from taskflow.models import User
from taskflow.services.defaults import DefaultBootstrapper


@pytest.fixture()
def engine():
    # StaticPool keeps a single connection so the in-memory database survives
    # across sessions within one test.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _make_user(db, email):
    user = User(email=email, hashed_password="not-a-real-hash")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def user(db):
    return _make_user(db, "ada@example.com")


@pytest.fixture()
def other_user(db):
    return _make_user(db, "grace@example.com")


@pytest.fixture()
def seeded_user(db, user):
    """A user with the default categories, statuses and levels."""
    DefaultBootstrapper(db, user.id).provision_user()
    return user


@pytest.fixture()
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers(client):
    response = client.post(
        "/api/auth/signup",
        json={"email": "api-user@example.com", "password": "secret123"},
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
