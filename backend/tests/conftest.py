"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import os
import tempfile
from typing import Callable, Iterator

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="warbler-media-")
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient
from passlib.context import CryptContext
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from warbler import database
from warbler.core import security
from warbler.core.security import create_access_token, get_password_hash
from warbler.database import get_db
from warbler.main import app
from warbler.models import Base, User, UserRole
from warbler.services.mail import MailDeliveryError, MailService, get_mail_service

security.pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"], deprecated="auto", pbkdf2_sha256__default_rounds=1000
)

DEFAULT_PASSWORD = "Passw0rd"


class RecordingMailService(MailService):
    """Mail service that remembers confirmation links instead of sending them."""

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[dict[str, str]] = []
        self.fail = False

    async def send_confirmation(self, email: str, username: str, token_body: str) -> None:
        if self.fail:
            raise MailDeliveryError("SMTP relay unavailable")
        self.sent.append({"email": email, "username": username, "token": token_body})


@pytest.fixture()
def test_engine() -> Iterator[Engine]:
    """Provide an in-memory SQLite engine for isolated tests."""

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(test_engine) -> sessionmaker[Session]:
    """Return a session factory bound to the test engine."""

    return sessionmaker(bind=test_engine, future=True)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    """Yield a SQLAlchemy session for unit tests."""

    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def mailer() -> RecordingMailService:
    return RecordingMailService()


@pytest.fixture()
def client(session_factory, mailer, monkeypatch) -> Iterator[TestClient]:
    """Yield a TestClient with the database and mail dependencies overridden.

    The websocket gateway opens its own sessions, so ``SessionLocal`` is
    pointed at the test engine as well.
    """

    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(database, "SessionLocal", session_factory)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mail_service] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def create_user(session_factory) -> Callable[..., int]:
    """Factory inserting a user directly and returning its id."""

    def _create(
        username: str,
        *,
        active: bool = True,
        role: UserRole = UserRole.USER,
        password: str = DEFAULT_PASSWORD,
    ) -> int:
        with session_factory() as session:
            user = User(
                first_name=username.title(),
                last_name="Tester",
                username=username,
                email=f"{username}@example.com",
                hashed_password=get_password_hash(password),
                active=active,
                role=role,
            )
            session.add(user)
            session.commit()
            return user.id

    return _create


@pytest.fixture()
def auth_headers() -> Callable[[int], dict[str, str]]:
    def _headers(user_id: int) -> dict[str, str]:
        return {"x-auth-token": create_access_token(user_id)}

    return _headers
