"""Pytest configuration for all tests."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["DB_RETRY_BACKOFF_SECONDS"] = "0"

from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hostpanel.core.rate_limiter import limiter
from hostpanel.core.security import create_access_token
from hostpanel.db.base import Base
from hostpanel.db.seeds.seed_permissions import seed_permissions
from hostpanel.db.seeds.seed_roles import seed_roles
from hostpanel.db.seeds.seed_super_admin import seed_super_admin
from hostpanel.db.session import get_db
from hostpanel.main import app
from hostpanel.models import Role, User, UserRoleEnum, UserStatusEnum
from hostpanel.services.permission_cache import permission_cache

PASSWORD = "secret-password"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Fresh in-memory database, seeded with permissions, roles and the super admin."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()

    seed_permissions(session)
    seed_roles(session)
    seed_super_admin(session)
    permission_cache.invalidate(broadcast=False)

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
        permission_cache.invalidate(broadcast=False)


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    """API client whose requests share the test session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True


@pytest.fixture
def password_hash() -> str:
    # one bcrypt hash shared by every user a test creates
    from hostpanel.core.security import hash_password
    return hash_password(PASSWORD)


@pytest.fixture
def make_user(db: Session, password_hash: str):
    """Factory for users, optionally bound to a role by slug."""

    def _make_user(
        email: str,
        role_slug: Optional[str] = None,
        coarse_role: UserRoleEnum = UserRoleEnum.user,
        status: UserStatusEnum = UserStatusEnum.active,
    ) -> User:
        role_id = None
        if role_slug is not None:
            role_id = db.query(Role).filter(Role.slug == role_slug).one().id
            coarse_role = UserRoleEnum.admin
        user = User(
            email=email,
            hashed_password=password_hash,
            role=coarse_role,
            status=status,
            role_id=role_id,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def super_admin(db: Session) -> User:
    from hostpanel.core.config import settings
    return db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).one()


@pytest.fixture
def support_agent(make_user) -> User:
    return make_user("agent@example.com", role_slug="support_agent")


@pytest.fixture
def team_manager(make_user) -> User:
    return make_user("manager@example.com", role_slug="team_manager")


@pytest.fixture
def customer(make_user) -> User:
    return make_user("customer@example.com")


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def auth_headers():
    """Bearer header for a user, without going through /auth/login."""
    return bearer


@pytest.fixture
def role_by_slug(db: Session):
    def _role_by_slug(slug: str) -> Role:
        return db.query(Role).filter(Role.slug == slug).one()
    return _role_by_slug
