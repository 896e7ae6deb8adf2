"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides test database, client, user and cookie fixtures.

==============================================================================
"""

import os

# Settings are read at import time; configure before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("NODE_ENV", "test")

from datetime import datetime, timedelta, timezone
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.main import app
from app.database import Base, get_db
from app.models import User, RoleName
from app.utils.security import hash_password

PASSWORD = "Password1"


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

# In-memory SQLite for testing
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# USER FIXTURES
# ============================================================================

@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Factory creating a user with the shared test password."""
    def _make(
        email: str,
        role: RoleName = RoleName.CUSTOMER,
        name: str | None = None,
        restricted: bool = False,
    ) -> User:
        user = User(
            name=name or email.split("@")[0].title(),
            email=email,
            password=hash_password(PASSWORD),
            role=role,
            tokenVersion=0,
            isRestricted=restricted,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def alice(make_user) -> User:
    return make_user("alice@example.com")


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user("admin@example.com", role=RoleName.ADMIN, name="Admin")


@pytest.fixture
def restricted_user(make_user) -> User:
    return make_user("bob@example.com", restricted=True)


# ============================================================================
# COOKIE / TOKEN HELPERS
# ============================================================================

def use_cookies(client: TestClient, **cookies: str | None) -> None:
    """Replace the client's cookie jar with exactly these cookies."""
    client.cookies.clear()
    for name, value in cookies.items():
        if value is not None:
            client.cookies.set(name, value)


def login(client: TestClient, email: str, password: str = PASSWORD) -> dict:
    """Log in and return {"accessToken", "refreshToken"} taken from Set-Cookie."""
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    tokens = {
        "accessToken": response.cookies.get("accessToken"),
        "refreshToken": response.cookies.get("refreshToken"),
    }
    client.cookies.clear()
    return tokens


def refresh(client: TestClient, refresh_token: str):
    use_cookies(client, refreshToken=refresh_token)
    response = client.post("/auth/refresh-token")
    client.cookies.clear()
    return response


def make_token(user: User, token_type: str = "access", expires_in: timedelta = timedelta(minutes=15),
               secret: str | None = None, **extra) -> str:
    """Hand-crafted JWT, for expired / foreign / mistyped tokens."""
    payload = {
        "sub": str(user.id),
        "role": user.role.value,
        "tokenVersion": getattr(user, "tokenVersion", 0),
        "type": token_type,
        "exp": datetime.now(timezone.utc) + expires_in,
        **extra,
    }
    return jwt.encode(payload, secret or settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
