"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("EMAIL_BACKEND", "console")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.models.listing import Listing  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.auth import get_auth_service  # noqa: E402


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="client")
def client_fixture(db_session: Session):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


def _signup(db_session: Session, name: str, email: str, password: str) -> dict:
    result = get_auth_service().signup(
        db_session,
        name=name,
        email=email,
        password=password,
        password_confirm=password,
    )
    return {
        "user_id": result.user.id,
        "email": result.user.email,
        "password": password,
        "token": result.token,
        "headers": {"Authorization": f"Bearer {result.token}"},
    }


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Create a regular user and return its credentials and token."""
    return _signup(db_session, "Test User", "test@example.com", "password123")


@pytest.fixture(name="admin_user")
def admin_user_fixture(db_session: Session):
    """Create an admin user and return its credentials and token."""
    data = _signup(db_session, "Admin", "admin@example.com", "adminpass1")
    user = db_session.get(User, data["user_id"])
    user.role = "admin"
    db_session.commit()
    return data


@pytest.fixture(name="listing")
def listing_fixture(db_session: Session, test_user: dict):
    """A listing owned by the test user."""
    listing = Listing(
        owner_id=test_user["user_id"],
        title="Sunny room near campus",
        picture_cover="room.jpg",
        city="Austin",
        state="TX",
        country="US",
        zip="78705",
        rent=850.0,
        utilities_included=True,
    )
    db_session.add(listing)
    db_session.commit()
    db_session.refresh(listing)
    return listing
