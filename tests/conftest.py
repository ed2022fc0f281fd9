"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from forum_auth.config import Settings  # noqa: E402
from forum_auth.database import Base, get_db  # noqa: E402
from forum_auth.dependencies import get_auth_service, get_jwt_service  # noqa: E402
from forum_auth.models.user import User  # noqa: E402, F401
from forum_auth.services.auth import AuthService  # noqa: E402
from forum_auth.services.jwt import JWTService  # noqa: E402


class RecordingNotifier:
    """Collects reset links instead of logging them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send_reset_link(self, email: str, token: str) -> None:
        self.sent.append((email, token))

    @property
    def last_token(self) -> str:
        return self.sent[-1][1]


@pytest.fixture(name="settings")
def settings_fixture(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings with a fixed secret and a cheap bcrypt cost."""
    monkeypatch.setenv("JWT_SECRET", "test-secret-key")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.delenv("EXPOSE_RESET_TOKEN", raising=False)
    return Settings()


@pytest.fixture(name="notifier")
def notifier_fixture() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(name="jwt_service")
def jwt_service_fixture(settings: Settings) -> JWTService:
    return JWTService(settings)


@pytest.fixture(name="auth_service")
def auth_service_fixture(settings: Settings, jwt_service: JWTService, notifier: RecordingNotifier) -> AuthService:
    return AuthService(settings, jwt_service=jwt_service, notifier=notifier)


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
def client_fixture(db_session: Session, auth_service: AuthService, jwt_service: JWTService):
    """Create a test client with overridden dependencies and disabled rate limiting."""
    from forum_auth.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_jwt_service] = lambda: jwt_service
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session, auth_service: AuthService, jwt_service: JWTService):
    """Create a test user and return its details plus a session token."""
    user = auth_service.register(db_session, "alice", "Alice", "Anders", "a@x.com", "password1")
    token = jwt_service.create_token(user_id=user.id, username=user.username)

    return {
        "user_id": user.id,
        "username": user.username,
        "email": user.email,
        "password": "password1",
        "token": token,
    }
