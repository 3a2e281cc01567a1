"""Tests for caller resolution and the permission snapshot cache."""

from types import MappingProxyType

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session

from hostpanel.core.config import settings
from hostpanel.core.exceptions import AuthenticationError, PermissionDeniedError
from hostpanel.core.identity import RoleBound, SuperAdmin, Unprivileged
from hostpanel.db.base import Base
from hostpanel.db.seeds.seed_permissions import seed_permissions
from hostpanel.db.seeds.seed_roles import seed_roles
from hostpanel.db.seeds.seed_super_admin import seed_super_admin
from hostpanel.models import Role, User, UserRoleEnum, UserStatusEnum
from hostpanel.services.permission_cache import (
    INVALIDATION_CHANNEL, PermissionCache, load_role_grants, permission_cache,
)
from hostpanel.services.role_service import role_service


def test_system_role_holder_is_super_admin(db, super_admin):
    caller = permission_cache.resolve(db, super_admin.id)
    assert isinstance(caller, SuperAdmin)
    assert caller.has_permission("anything.at_all")
    assert caller.can_create_roles


def test_legacy_admin_without_role_is_super_admin(db, make_user):
    user = make_user("legacy@example.com", coarse_role=UserRoleEnum.admin)
    assert isinstance(permission_cache.resolve(db, user.id), SuperAdmin)


def test_role_holder_gets_exactly_its_permissions(db, support_agent, role_by_slug):
    caller = permission_cache.resolve(db, support_agent.id)
    assert isinstance(caller, RoleBound)
    assert caller.role_id == role_by_slug("support_agent").id
    assert caller.permissions == frozenset(role_by_slug("support_agent").permission_slugs)
    assert caller.has_permission("tickets.reply")
    assert not caller.has_permission("pricing.edit")
    assert caller.has_any_permission(["pricing.edit", "tickets.view"])
    assert not caller.can_create_roles


def test_plain_user_is_unprivileged(db, customer):
    caller = permission_cache.resolve(db, customer.id)
    assert isinstance(caller, Unprivileged)
    assert caller.permissions == frozenset()
    assert not caller.has_any_permission(["users.view"])


def test_dangling_role_pointer_fails_closed(db, customer):
    customer.role_id = 424242
    customer.role = UserRoleEnum.admin
    db.commit()
    assert isinstance(permission_cache.resolve(db, customer.id), Unprivileged)


def test_unknown_user_is_unauthenticated(db):
    with pytest.raises(AuthenticationError):
        permission_cache.resolve(db, 9999)


def test_inactive_user_is_denied(db, make_user):
    user = make_user("gone@example.com", role_slug="support_agent", status=UserStatusEnum.suspended)
    with pytest.raises(PermissionDeniedError):
        permission_cache.resolve(db, user.id)


def test_to_dict_describes_caller(db, support_agent):
    data = permission_cache.resolve(db, support_agent.id).to_dict()
    assert data["kind"] == "RoleBound"
    assert data["email"] == "agent@example.com"
    assert data["permissions"] == sorted(data["permissions"])


def test_snapshot_is_immutable(db):
    snapshot = load_role_grants(db)
    assert isinstance(snapshot, MappingProxyType)
    with pytest.raises(TypeError):
        snapshot[0] = None


def test_snapshot_loaded_once_until_invalidated(db):
    calls = []

    def loader(session):
        calls.append(1)
        return load_role_grants(session)

    cache = PermissionCache(loader=loader)
    first = cache.snapshot(db)
    assert cache.snapshot(db) is first
    assert len(calls) == 1

    cache.invalidate(broadcast=False)
    assert not cache.is_warm
    assert cache.snapshot(db) is not first
    assert len(calls) == 2


def test_load_racing_invalidation_is_not_installed(db):
    cache = PermissionCache()

    def racing_loader(session):
        snapshot = load_role_grants(session)
        cache.invalidate(broadcast=False)
        return snapshot

    cache._loader = racing_loader
    served = cache.snapshot(db)
    assert served
    assert not cache.is_warm


def test_remote_invalidation_ignores_own_messages(db):
    cache = PermissionCache()
    cache.snapshot(db)

    cache.handle_remote_invalidation({"channel": INVALIDATION_CHANNEL, "data": cache.instance_id})
    assert cache.is_warm

    cache.handle_remote_invalidation({"channel": INVALIDATION_CHANNEL, "data": "another-process"})
    assert not cache.is_warm


# ---- snapshot isolation ----

@pytest.fixture
def snapshot_engine(tmp_path):
    """File-backed SQLite where each transaction keeps one read view, as InnoDB does."""
    engine = create_engine(f"sqlite:///{tmp_path / 'hostpanel.db'}")

    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA journal_mode=WAL")

    @event.listens_for(engine, "begin")
    def _begin(connection):
        connection.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    with Session(engine) as setup:
        seed_permissions(setup)
        seed_roles(setup)
        seed_super_admin(setup)

    permission_cache.invalidate(broadcast=False)
    try:
        yield engine
    finally:
        permission_cache.invalidate(broadcast=False)
        engine.dispose()


def test_grants_are_not_read_through_a_stale_request_transaction(snapshot_engine, password_hash):
    with Session(snapshot_engine) as setup:
        role_id = setup.query(Role.id).filter(Role.slug == "support_agent").scalar()
        admin_id = setup.query(User.id).filter(User.email == settings.SUPER_ADMIN_EMAIL).scalar()
        agent = User(
            email="agent@example.com",
            hashed_password=password_hash,
            role=UserRoleEnum.admin,
            role_id=role_id,
        )
        setup.add(agent)
        setup.commit()
        agent_id = agent.id

    request = Session(snapshot_engine)
    writer = Session(snapshot_engine)
    try:
        # the request's read view is fixed from here on
        agent = request.query(User).filter(User.id == agent_id).one()

        root = permission_cache.resolve(writer, admin_id)
        role_service.update_role(writer, root, role_id, permissions=["tickets.view", "pricing.edit"])

        assert permission_cache.identity_for(request, agent).has_permission("pricing.edit")
        with Session(snapshot_engine) as fresh:
            assert permission_cache.resolve(fresh, agent_id).has_permission("pricing.edit")
    finally:
        request.close()
        writer.close()


def test_session_factory_is_used_for_loading(db):
    opened = []

    def factory():
        session = Session(bind=db.get_bind())
        opened.append(session)
        return session

    cache = PermissionCache(session_factory=factory)
    assert cache.snapshot(db)
    assert len(opened) == 1
    assert opened[0] is not db
