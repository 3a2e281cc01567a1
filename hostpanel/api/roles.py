"""Roles API router: role CRUD and user role assignment.

Literal sub-paths (``/permissions``, ``/admin-users/list``, ``/assign/...``)
are declared before ``/{role_id}`` so they are never matched as an id.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from hostpanel.db.session import get_db
from hostpanel.schemas.schemas import (
    AdminUserOut, CreatedResponse, MessageResponse, PermissionGroupOut, PermissionOut,
    RoleAssignRequest, RoleCreate, RoleDetailOut, RoleSummaryOut, RoleUpdate,
)
from hostpanel.services.role_service import role_service
from hostpanel.core.identity import CallerIdentity
from hostpanel.core.middleware import request_origin
from hostpanel.core.security import (
    get_current_caller, require_any_permission, require_permission, require_super_admin,
)

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("/permissions", response_model=list[PermissionGroupOut])
async def list_permissions(
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_permission("roles.view")),
):
    """List all permissions grouped by department."""
    return [
        PermissionGroupOut(
            department=group["department"],
            permissions=[PermissionOut.model_validate(p) for p in group["permissions"]],
        )
        for group in role_service.list_permissions(db)
    ]


@router.get("/admin-users/list", response_model=list[AdminUserOut])
async def list_admin_users(
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_permission("users.view")),
):
    """List users holding an admin role."""
    return role_service.list_admin_users(db)


@router.put("/assign/{user_id}", response_model=MessageResponse)
async def assign_role(
    user_id: int,
    body: RoleAssignRequest,
    request: Request,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_permission("users.edit")),
):
    """Assign a role to a user, or clear it with ``role_id: null``."""
    user = role_service.assign_role_to_user(
        db, caller, user_id, body.role_id, origin=request_origin(request),
    )
    message = "Role assigned successfully" if user.role_id else "Role removed successfully"
    return MessageResponse(message=message, detail={"user_id": user.id, "role_id": user.role_id})


@router.get("", response_model=list[RoleSummaryOut])
async def list_roles(
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_any_permission("roles.view")),
):
    """List roles with user counts and permission summaries."""
    return role_service.list_roles(db)


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    body: RoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Create a role (super admins and roles with delegated creation rights)."""
    role = role_service.create_role(
        db, caller,
        name=body.name,
        description=body.description,
        department=body.department,
        can_create_roles=body.can_create_roles,
        permission_slugs=body.permissions,
        origin=request_origin(request),
    )
    return CreatedResponse(message="Role created successfully", id=role.id, slug=role.slug)


@router.get("/{role_id}", response_model=RoleDetailOut)
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_permission("roles.view")),
):
    """Get a single role with full permission detail."""
    return RoleDetailOut.model_validate(role_service.get_role(db, role_id))


@router.get("/{role_id}/users", response_model=list[AdminUserOut])
async def list_role_users(
    role_id: int,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_permission("roles.view")),
):
    """List users holding a role."""
    return role_service.list_role_users(db, role_id)


@router.put("/{role_id}", response_model=RoleDetailOut)
async def update_role(
    role_id: int,
    body: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_permission("roles.edit")),
):
    """Update a role. A ``permissions`` list replaces the current set."""
    changes = body.model_dump(exclude_unset=True)
    role = role_service.update_role(db, caller, role_id, origin=request_origin(request), **changes)
    return RoleDetailOut.model_validate(role)


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    request: Request,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_super_admin),
):
    """Delete an unused, non-system role."""
    role_service.delete_role(db, caller, role_id, origin=request_origin(request))
    return MessageResponse(message="Role deleted successfully")
