"""
Test configuration and fixtures.
"""
import os
import pytest
from typing import Generator
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Settings read from the environment must be valid before anything builds them
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-that-is-long-enough-for-testing")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "test")

from cashflow_api.core.config import Settings
from cashflow_api.core.security import PasswordHasher, TokenService
from cashflow_api.db.base import Base
from cashflow_api.main import create_app
from cashflow_api.models.user import User
import cashflow_api.models  # noqa: F401

TEST_SECRET = "test-jwt-secret-key-that-is-long-enough-for-testing"
TEST_PASSWORD = "testpassword123"


def make_settings(**overrides) -> Settings:
    values = {
        "JWT_SECRET_KEY": TEST_SECRET,
        "DATABASE_URL": "sqlite://",
        "BCRYPT_ROUNDS": 4,
        "ENVIRONMENT": "test",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings_factory():
    """Build Settings with test defaults plus overrides."""
    return make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    """Fresh application with its own in-memory database."""
    application = create_app(settings)
    Base.metadata.create_all(application.state.engine)
    yield application
    Base.metadata.drop_all(application.state.engine)
    application.state.engine.dispose()


@pytest.fixture
def db(app: FastAPI) -> Generator[Session, None, None]:
    """Create a database session for the test."""
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def hasher(app: FastAPI) -> PasswordHasher:
    return app.state.password_hasher


@pytest.fixture
def token_service(app: FastAPI) -> TokenService:
    return app.state.token_service


@pytest.fixture
def test_user(db: Session, hasher: PasswordHasher) -> User:
    user = User(username="testuser", password_hash=hasher.hash(TEST_PASSWORD))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_token(client: TestClient, test_user: User) -> str:
    response = client.post(
        "/user/login",
        json={"username": "testuser", "password": TEST_PASSWORD},
    )
    # Tests choose explicitly between the cookie and the header
    client.cookies.clear()
    return response.json()["data"]["token"]


@pytest.fixture
def auth_headers(auth_token: str) -> dict:
    """Get auth headers for test user."""
    return {"Authorization": f"Bearer {auth_token}"}
