from __future__ import annotations

import os
import tempfile
from typing import Callable, Generator

_TEST_DIR = tempfile.mkdtemp(prefix="socialconnect-tests-")

os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["VAULT_LOCATION"] = os.path.join(_TEST_DIR, "vault")
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from socialconnect import models  # noqa: E402
from socialconnect.auth import create_access_token  # noqa: E402
from socialconnect.db import Base, SessionLocal, engine  # noqa: E402
from socialconnect.main import app  # noqa: E402
from socialconnect.services.auth_identities import create_password_identity  # noqa: E402


@pytest.fixture(autouse=True)
def reset_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def make_user(db: Session) -> Callable[..., models.User]:
    """Factory creating users directly in the database."""

    def _make_user(username: str, password: str | None = None, **fields) -> models.User:
        fields.setdefault("email", f"{username.lower()}@example.com")
        fields.setdefault("first_name", username.capitalize())
        fields.setdefault("last_name", "Tester")
        user = models.User(username=username, **fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        if password:
            create_password_identity(db, user, password)
        return user

    return _make_user


@pytest.fixture()
def auth_headers() -> Callable[[models.User], dict[str, str]]:
    def _auth_headers(user: models.User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers


@pytest.fixture()
def create_post(client: TestClient, auth_headers) -> Callable[..., dict]:
    """Create a post through the API and return its payload."""

    def _create_post(user: models.User, content: str, category: str = "general") -> dict:
        response = client.post(
            "/posts",
            data={"content": content, "category": category},
            headers=auth_headers(user),
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create_post
