"""Role administration service: CRUD over roles and user role assignment.

Delegation rules enforced here:

* only super admins or holders of ``can_create_roles`` may create roles;
* non-super-admins can never grant or keep ``roles.*`` permissions on a
  role they create or edit (they are dropped silently, not rejected);
* system roles are editable by super admins only and never deletable;
* every successful write clears the permission cache.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hostpanel.core.exceptions import (
    PermissionDeniedError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from hostpanel.core.identity import CallerIdentity
from hostpanel.db.session import retry_on_transient
from hostpanel.models.role import Permission, Role
from hostpanel.models.user import User, UserRoleEnum
from hostpanel.services.audit_service import audit_service
from hostpanel.services.permission_cache import permission_cache

logger = logging.getLogger("hostpanel")

RESERVED_PREFIX = "roles."
UPDATABLE_FIELDS = {"name", "description", "department", "can_create_roles", "permissions"}


def derive_slug(name: str) -> str:
    """``"Sales Manager"`` -> ``"sales_manager"``."""
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")


def _role_state(role: Role) -> Dict[str, Any]:
    return {
        "slug": role.slug,
        "name": role.name,
        "description": role.description,
        "department": getattr(role.department, "value", role.department),
        "can_create_roles": role.can_create_roles,
        "permissions": role.permission_slugs,
    }


class RoleService:
    """Roles, their permission assignments, and who holds them."""

    # ---- helpers ----

    @staticmethod
    def filter_permission_slugs(caller: CallerIdentity, slugs: Iterable[str]) -> List[str]:
        """Deduplicate and, for non-super-admins, drop ``roles.*`` slugs."""
        unique = list(dict.fromkeys(slugs))
        if caller.is_super_admin:
            return unique
        kept = [s for s in unique if not s.startswith(RESERVED_PREFIX)]
        if len(kept) != len(unique):
            logger.info(
                "Dropped reserved permissions %s requested by user %s",
                sorted(set(unique) - set(kept)), caller.user_id,
            )
        return kept

    @staticmethod
    def _load_permissions(db: Session, slugs: List[str]) -> List[Permission]:
        if not slugs:
            return []
        found = db.query(Permission).filter(Permission.slug.in_(slugs)).all()
        missing = sorted(set(slugs) - {p.slug for p in found})
        if missing:
            raise ValidationError("Unknown permissions", detail={"permissions": missing})
        return found

    @staticmethod
    def _get_role(db: Session, role_id: int) -> Role:
        role = db.query(Role).filter(Role.id == role_id).first()
        if not role:
            raise ResourceNotFoundError("Role not found")
        return role

    @staticmethod
    def _slug_for(name: str) -> str:
        slug = derive_slug(name)
        if not slug:
            raise ValidationError(
                "Role name must contain letters or digits",
                detail={"name": "must contain at least one letter or digit"},
            )
        return slug

    # ---- reads ----

    @staticmethod
    @retry_on_transient
    def list_roles(db: Session) -> List[Dict[str, Any]]:
        """All roles with user counts and permission summaries."""
        roles = db.query(Role).order_by(Role.is_system.desc(), Role.name.asc()).all()
        counts = dict(
            db.query(User.role_id, func.count(User.id))
            .filter(User.role_id.isnot(None))
            .group_by(User.role_id)
            .all()
        )
        return [
            {
                "id": role.id,
                "slug": role.slug,
                "name": role.name,
                "description": role.description,
                "department": role.department,
                "is_system": role.is_system,
                "can_create_roles": role.can_create_roles,
                "user_count": counts.get(role.id, 0),
                "permission_count": len(role.permissions),
                "permissions": role.permission_slugs,
                "created_at": role.created_at,
            }
            for role in roles
        ]

    @staticmethod
    @retry_on_transient
    def get_role(db: Session, role_id: int) -> Role:
        return RoleService._get_role(db, role_id)

    @staticmethod
    @retry_on_transient
    def list_permissions(db: Session) -> List[Dict[str, Any]]:
        """All permissions grouped by department."""
        permissions = db.query(Permission).order_by(Permission.department, Permission.slug).all()
        groups: Dict[str, List[Permission]] = {}
        for permission in permissions:
            groups.setdefault(permission.department, []).append(permission)
        return [
            {"department": department, "permissions": items}
            for department, items in groups.items()
        ]

    @staticmethod
    def _user_row(db: Session, user: User) -> Dict[str, Any]:
        role = user.assigned_role
        return {
            "id": user.id,
            "uuid": user.uuid,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": user.role.value,
            "status": user.status.value,
            "role_id": user.role_id,
            "role_name": role.name if role else None,
            "role_slug": role.slug if role else None,
            "is_super_admin": permission_cache.identity_for(db, user).is_super_admin,
            "created_at": user.created_at,
        }

    @staticmethod
    @retry_on_transient
    def list_admin_users(db: Session) -> List[Dict[str, Any]]:
        """Users holding the coarse admin role or any role assignment."""
        users = (
            db.query(User)
            .filter((User.role == UserRoleEnum.admin) | (User.role_id.isnot(None)))
            .order_by(User.email)
            .all()
        )
        return [RoleService._user_row(db, u) for u in users]

    @staticmethod
    @retry_on_transient
    def list_role_users(db: Session, role_id: int) -> List[Dict[str, Any]]:
        role = RoleService._get_role(db, role_id)
        users = db.query(User).filter(User.role_id == role.id).order_by(User.email).all()
        return [RoleService._user_row(db, u) for u in users]

    # ---- writes ----
    # retries stop at commit(): invalidation and re-reads run outside the ``_*_tx`` helpers

    @staticmethod
    @retry_on_transient
    def _fetch_user(db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError("User not found")
        return user

    @staticmethod
    @retry_on_transient
    def _create_role_tx(
        db: Session,
        caller: CallerIdentity,
        name: str,
        description: Optional[str],
        department,
        can_create_roles: bool,
        permission_slugs: Iterable[str],
        origin: Optional[Dict[str, Any]],
    ) -> int:
        if not (caller.is_super_admin or caller.can_create_roles):
            raise PermissionDeniedError("You do not have permission to create roles")

        slug = RoleService._slug_for(name)
        if db.query(Role.id).filter(Role.slug == slug).first():
            raise ResourceConflictError("A role with this name already exists", detail={"slug": slug})

        permissions = RoleService._load_permissions(
            db, RoleService.filter_permission_slugs(caller, permission_slugs)
        )
        role = Role(
            slug=slug,
            name=name.strip(),
            description=description,
            department=department,
            is_system=False,
            can_create_roles=bool(can_create_roles) if caller.is_super_admin else False,
            created_by=caller.user_id,
            permissions=permissions,
        )
        db.add(role)
        try:
            db.flush()
            role_id = role.id
            audit_service.log(
                db, caller.user_id, caller.email, "role.created", "role", role_id,
                new_value=_role_state(role), commit=False, **(origin or {}),
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ResourceConflictError("A role with this name already exists", detail={"slug": slug})
        return role_id

    @staticmethod
    def create_role(
        db: Session,
        caller: CallerIdentity,
        name: str,
        description: Optional[str] = None,
        department=None,
        can_create_roles: bool = False,
        permission_slugs: Iterable[str] = (),
        origin: Optional[Dict[str, Any]] = None,
    ) -> Role:
        """Create a role with its filtered permission set."""
        role_id = RoleService._create_role_tx(
            db, caller, name, description, department, can_create_roles, permission_slugs, origin,
        )
        permission_cache.invalidate()
        logger.info("Role %s created by user %s", role_id, caller.user_id)
        return RoleService.get_role(db, role_id)

    @staticmethod
    @retry_on_transient
    def _update_role_tx(
        db: Session,
        caller: CallerIdentity,
        role_id: int,
        origin: Optional[Dict[str, Any]],
        changes: Dict[str, Any],
    ) -> None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError("Unknown role fields", detail={"fields": sorted(unknown)})
        if not caller.has_permission("roles.edit"):
            raise PermissionDeniedError("Permission denied")

        role = RoleService._get_role(db, role_id)
        if role.is_system and not caller.is_super_admin:
            raise PermissionDeniedError("Cannot modify system roles")
        before = _role_state(role)

        name = changes.get("name")
        if name is not None and name.strip() != role.name:
            if role.is_system:
                raise ValidationError("Cannot rename system roles", detail={"name": "system roles keep their name"})
            slug = RoleService._slug_for(name)
            clash = db.query(Role.id).filter(Role.slug == slug, Role.id != role.id).first()
            if clash:
                raise ResourceConflictError("A role with this name already exists", detail={"slug": slug})
            role.name = name.strip()
            role.slug = slug

        if "description" in changes:
            role.description = changes["description"]
        if "department" in changes:
            role.department = changes["department"]

        if changes.get("can_create_roles") is not None:
            if caller.is_super_admin:
                role.can_create_roles = bool(changes["can_create_roles"])
            elif bool(changes["can_create_roles"]) != role.can_create_roles:
                logger.info("Ignored can_create_roles change on role %s by user %s", role.id, caller.user_id)

        requested = changes.get("permissions")
        if requested is not None:
            role.permissions = RoleService._load_permissions(
                db, RoleService.filter_permission_slugs(caller, requested)
            )
        elif not caller.is_super_admin:
            role.permissions = [p for p in role.permissions if not p.slug.startswith(RESERVED_PREFIX)]

        try:
            db.flush()
            audit_service.log(
                db, caller.user_id, caller.email, "role.updated", "role", role.id,
                old_value=before, new_value=_role_state(role), commit=False, **(origin or {}),
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ResourceConflictError("A role with this name already exists")

    @staticmethod
    def update_role(
        db: Session,
        caller: CallerIdentity,
        role_id: int,
        origin: Optional[Dict[str, Any]] = None,
        **changes,
    ) -> Role:
        """Apply ``changes`` to a role.

        A supplied ``permissions`` list replaces the role's assignments
        wholesale; omitting it leaves them alone (minus ``roles.*`` when a
        non-super-admin edits).
        """
        RoleService._update_role_tx(db, caller, role_id, origin, changes)
        permission_cache.invalidate()
        logger.info("Role %s updated by user %s", role_id, caller.user_id)
        return RoleService.get_role(db, role_id)

    @staticmethod
    @retry_on_transient
    def _delete_role_tx(
        db: Session,
        caller: CallerIdentity,
        role_id: int,
        origin: Optional[Dict[str, Any]],
    ) -> None:
        if not caller.is_super_admin:
            raise PermissionDeniedError("Super admin access required")

        role = RoleService._get_role(db, role_id)
        if role.is_system:
            raise PermissionDeniedError("Cannot delete system roles")

        user_count = db.query(func.count(User.id)).filter(User.role_id == role.id).scalar() or 0
        if user_count:
            raise ResourceConflictError(
                f"Cannot delete role: {user_count} user(s) still assigned",
                detail={"user_count": user_count},
            )

        before = _role_state(role)
        db.delete(role)
        audit_service.log(
            db, caller.user_id, caller.email, "role.deleted", "role", role_id,
            old_value=before, commit=False, **(origin or {}),
        )
        db.commit()

    @staticmethod
    def delete_role(
        db: Session,
        caller: CallerIdentity,
        role_id: int,
        origin: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Delete an unused, non-system role. Super admin only."""
        RoleService._delete_role_tx(db, caller, role_id, origin)
        permission_cache.invalidate()
        logger.info("Role %s deleted by user %s", role_id, caller.user_id)

    @staticmethod
    @retry_on_transient
    def _assign_role_tx(
        db: Session,
        caller: CallerIdentity,
        user_id: int,
        role_id: Optional[int],
        origin: Optional[Dict[str, Any]],
    ) -> None:
        if not caller.has_permission("users.edit"):
            raise PermissionDeniedError("Permission denied")

        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError("User not found")
        if not caller.is_super_admin and permission_cache.identity_for(db, user).is_super_admin:
            raise PermissionDeniedError("Only a super admin can change a super admin's role")

        before = {"role": user.role.value, "role_id": user.role_id}
        if role_id is None:
            user.role_id = None
            user.role = UserRoleEnum.user
        else:
            role = RoleService._get_role(db, role_id)
            if role.is_system and not caller.is_super_admin:
                raise PermissionDeniedError("Only a super admin can assign system roles")
            user.role_id = role.id
            user.role = UserRoleEnum.admin

        audit_service.log(
            db, caller.user_id, caller.email, "user.role_assigned", "user", user.id,
            old_value=before, new_value={"role": user.role.value, "role_id": user.role_id},
            commit=False, **(origin or {}),
        )
        db.commit()

    @staticmethod
    def assign_role_to_user(
        db: Session,
        caller: CallerIdentity,
        user_id: int,
        role_id: Optional[int],
        origin: Optional[Dict[str, Any]] = None,
    ) -> User:
        """Point a user at a role, or demote them when ``role_id`` is None."""
        RoleService._assign_role_tx(db, caller, user_id, role_id, origin)
        permission_cache.invalidate()
        logger.info("User %s assigned role %s by user %s", user_id, role_id, caller.user_id)
        return RoleService._fetch_user(db, user_id)


role_service = RoleService()
