"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, rebuilt for each test
- One user per role, created in a fixed enumeration order
- Record factory going through the record service
- HTTPX AsyncClient with bearer tokens per role
"""
import itertools
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable, Generator

# Must be set before the app is imported
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "dev"
os.environ["SENTRY_DSN"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from lien_recovery.core.deps import get_db
from lien_recovery.core.security import create_session_token
from lien_recovery.db.base import Base
from lien_recovery.db.enums import Role
from lien_recovery.db.models import Record, User
from lien_recovery.db.session import SessionLocal, engine
from lien_recovery.main import app
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.record import RecordCreate
from lien_recovery.services import record_service

# Users are enumerated by created_at; pin it so redeemer tie-breaks are stable
USER_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)

PROVIDER_NAME = "Acme Clinic"


def as_actor(user: User) -> Actor:
    return Actor(
        user_id=user.id,
        role=Role(user.role),
        full_name=user.full_name,
        username=user.username,
    )


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    App code commits freely; tables are dropped afterwards.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# =============================================================================
# User Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    counter = itertools.count()

    def _make(role: Role, username: str | None = None, full_name: str | None = None) -> User:
        n = next(counter)
        username = username or f"{role.value}-{n}"
        user = User(
            username=username,
            full_name=full_name if full_name is not None else username.replace("_", " ").title(),
            email=f"{username}@example.com",
            role=role.value,
            created_at=USER_EPOCH + timedelta(seconds=n),
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user(Role.ADMIN, "admin")


@pytest.fixture
def super_admin(make_user) -> User:
    return make_user(Role.SUPER_ADMIN, "root")


@pytest.fixture
def collector(make_user) -> User:
    return make_user(Role.COLLECTOR, "carla")


@pytest.fixture
def collector_2(make_user) -> User:
    return make_user(Role.COLLECTOR, "colin")


@pytest.fixture
def redeemer(make_user) -> User:
    return make_user(Role.PAYMENT_REDEEMER, "rita")


@pytest.fixture
def redeemer_2(make_user) -> User:
    return make_user(Role.PAYMENT_REDEEMER, "ray")


@pytest.fixture
def provider_user(make_user) -> User:
    return make_user(Role.PROVIDER, "acme", full_name=PROVIDER_NAME)


@pytest.fixture
def hearing_rep(make_user) -> User:
    return make_user(Role.HEARING_REPRESENTATIVE, "hal")


# =============================================================================
# Record Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def make_record(db: Session) -> Callable[..., Record]:
    def _make(
        provider: str = PROVIDER_NAME,
        pt_name: str = "Jane Roe",
        *,
        actor: Actor | None = None,
        now: datetime | None = None,
        **fields,
    ) -> Record:
        data = RecordCreate(provider=provider, pt_name=pt_name, **fields)
        return record_service.create_record(db, data, actor, now=now)

    return _make


# =============================================================================
# Client Fixtures
# =============================================================================

@dataclass
class AuthHeaders:
    """Bearer headers per user, built on demand."""

    def for_user(self, user: User) -> dict[str, str]:
        token = create_session_token(user.id, user.role, user.token_version)
        return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth() -> AuthHeaders:
    return AuthHeaders()


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient bound to the test session.

    Requests are unauthenticated unless a test passes headers from `auth`.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
