"""Process-wide permission cache.

Holds an immutable role -> permission snapshot. Readers take whatever
snapshot reference is current; invalidation swaps the reference to ``None``
and never mutates a snapshot in place. A generation counter keeps a load
that raced an invalidation from installing its stale result.
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hostpanel.core.exceptions import AuthenticationError, PermissionDeniedError
from hostpanel.core.identity import CallerIdentity, RoleBound, SuperAdmin, Unprivileged
from hostpanel.db.session import retry_on_transient
from hostpanel.models.role import Permission, Role, role_permissions
from hostpanel.models.user import User, UserRoleEnum, UserStatusEnum
from hostpanel.services.cache_service import cache_service

logger = logging.getLogger("hostpanel")

INVALIDATION_CHANNEL = "permissions:invalidated"


@dataclass(frozen=True)
class RoleGrant:
    role_id: int
    slug: str
    is_system: bool
    can_create_roles: bool
    permissions: FrozenSet[str]


Snapshot = Mapping[int, RoleGrant]


@retry_on_transient
def load_role_grants(db: Session) -> Snapshot:
    """Read every role with its permission slugs in one join."""
    rows = db.execute(
        select(Role.id, Role.slug, Role.is_system, Role.can_create_roles, Permission.slug)
        .select_from(Role)
        .outerjoin(role_permissions, role_permissions.c.role_id == Role.id)
        .outerjoin(Permission, Permission.id == role_permissions.c.permission_id)
    ).all()

    roles: Dict[int, dict] = {}
    for role_id, role_slug, is_system, can_create, permission_slug in rows:
        entry = roles.setdefault(role_id, {
            "slug": role_slug,
            "is_system": bool(is_system),
            "can_create_roles": bool(can_create),
            "permissions": set(),
        })
        if permission_slug:
            entry["permissions"].add(permission_slug)

    return MappingProxyType({
        role_id: RoleGrant(
            role_id=role_id,
            slug=data["slug"],
            is_system=data["is_system"],
            can_create_roles=data["can_create_roles"],
            permissions=frozenset(data["permissions"]),
        )
        for role_id, data in roles.items()
    })


@retry_on_transient
def _get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


class PermissionCache:
    """In-memory mirror of role -> permission data."""

    def __init__(
        self,
        loader: Callable[[Session], Snapshot] = load_role_grants,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self._loader = loader
        self._session_factory = session_factory
        self._snapshot: Optional[Snapshot] = None
        self._generation = 0
        self._load_lock = threading.Lock()
        self._swap_lock = threading.Lock()
        self.instance_id = uuid.uuid4().hex

    @property
    def is_warm(self) -> bool:
        return self._snapshot is not None

    def snapshot(self, db: Session) -> Snapshot:
        """Return the current snapshot, loading it from the store if needed."""
        current = self._snapshot
        if current is not None:
            return current

        with self._load_lock:
            current = self._snapshot
            if current is not None:
                return current
            generation = self._generation
            with self._loader_session(db) as session:
                loaded = self._loader(session)
            with self._swap_lock:
                if generation == self._generation:
                    self._snapshot = loaded
                else:
                    logger.debug("Permission snapshot invalidated during load; not installing")
            logger.debug("Loaded permission snapshot with %d roles", len(loaded))
            return loaded

    def _loader_session(self, db: Session) -> Session:
        # never the caller's session: its read view may predate the last invalidation
        if self._session_factory is not None:
            return self._session_factory()
        return Session(bind=db.get_bind())

    def resolve(self, db: Session, user_id: int) -> CallerIdentity:
        """Build the caller identity for an authenticated user id."""
        user = _get_user(db, user_id)
        if user is None:
            raise AuthenticationError("User not found")
        if user.status != UserStatusEnum.active:
            raise PermissionDeniedError("Account is not active")
        return self.identity_for(db, user)

    def identity_for(self, db: Session, user: User) -> CallerIdentity:
        if user.role_id is not None:
            grant = self.snapshot(db).get(user.role_id)
            if grant is None:
                logger.warning("User %s points at unknown role %s", user.id, user.role_id)
                return Unprivileged(user_id=user.id, email=user.email)
            if grant.is_system:
                return SuperAdmin(user_id=user.id, email=user.email)
            return RoleBound(
                user_id=user.id,
                email=user.email,
                bound_role_id=grant.role_id,
                role_slug=grant.slug,
                granted=grant.permissions,
                may_create_roles=grant.can_create_roles,
            )

        # Legacy bootstrap path: coarse admin without a role assignment
        if user.role == UserRoleEnum.admin:
            return SuperAdmin(user_id=user.id, email=user.email)
        return Unprivileged(user_id=user.id, email=user.email)

    def invalidate(self, broadcast: bool = True) -> None:
        """Drop the whole snapshot; the next reader reloads it."""
        with self._swap_lock:
            self._generation += 1
            self._snapshot = None
        logger.info("Permission cache invalidated (generation %d)", self._generation)

        if broadcast and not cache_service.publish(INVALIDATION_CHANNEL, self.instance_id):
            if cache_service.enabled:
                logger.warning("Could not broadcast permission cache invalidation")

    def handle_remote_invalidation(self, message: dict) -> None:
        """Pub/sub callback for invalidations made by sibling processes."""
        if message.get("data") == self.instance_id:
            return
        self.invalidate(broadcast=False)


permission_cache = PermissionCache()
