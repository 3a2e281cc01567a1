"""Resolved caller identities.

Every authenticated request carries exactly one of these variants, built once
by the permission cache. Gates only ever ask the identity; they never look at
the user's role fields directly.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional


@dataclass(frozen=True)
class CallerIdentity:
    user_id: int
    email: str

    @property
    def is_super_admin(self) -> bool:
        return False

    @property
    def can_create_roles(self) -> bool:
        return False

    @property
    def permissions(self) -> FrozenSet[str]:
        return frozenset()

    @property
    def role_id(self) -> Optional[int]:
        return None

    def has_permission(self, slug: str) -> bool:
        return self.is_super_admin or slug in self.permissions

    def has_any_permission(self, slugs: Iterable[str]) -> bool:
        return self.is_super_admin or any(slug in self.permissions for slug in slugs)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "kind": type(self).__name__,
            "is_super_admin": self.is_super_admin,
            "can_create_roles": self.can_create_roles,
            "role_id": self.role_id,
            "permissions": sorted(self.permissions),
        }


@dataclass(frozen=True)
class SuperAdmin(CallerIdentity):
    """Unconditional authorization: system-role holders and legacy admins."""

    @property
    def is_super_admin(self) -> bool:
        return True

    @property
    def can_create_roles(self) -> bool:
        return True


@dataclass(frozen=True)
class RoleBound(CallerIdentity):
    """Caller whose rights come from one assigned role."""

    bound_role_id: int = 0
    role_slug: str = ""
    granted: FrozenSet[str] = field(default_factory=frozenset)
    may_create_roles: bool = False

    @property
    def can_create_roles(self) -> bool:
        return self.may_create_roles

    @property
    def permissions(self) -> FrozenSet[str]:
        return self.granted

    @property
    def role_id(self) -> Optional[int]:
        return self.bound_role_id


@dataclass(frozen=True)
class Unprivileged(CallerIdentity):
    """Authenticated caller holding no permissions."""
