"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from hostpanel.models.role import RoleDepartment


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[Dict[str, Any]] = None

class CallerOut(BaseModel):
    user_id: int
    email: str
    kind: str
    is_super_admin: bool
    can_create_roles: bool
    role_id: Optional[int] = None
    permissions: List[str] = []


# ---- Permission ----
class PermissionOut(BaseModel):
    id: int
    name: str
    slug: str
    department: str
    description: Optional[str] = None

    class Config:
        from_attributes = True

class PermissionGroupOut(BaseModel):
    department: str
    permissions: List[PermissionOut]


# ---- Role ----
class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    department: Optional[RoleDepartment] = None
    can_create_roles: bool = False
    permissions: List[str] = []

class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    department: Optional[RoleDepartment] = None
    can_create_roles: Optional[bool] = None
    permissions: Optional[List[str]] = None

class RoleSummaryOut(BaseModel):
    id: int
    slug: str
    name: str
    description: Optional[str] = None
    department: Optional[RoleDepartment] = None
    is_system: bool
    can_create_roles: bool
    user_count: int = 0
    permission_count: int = 0
    permissions: List[str] = []
    created_at: Optional[datetime] = None

class RoleDetailOut(BaseModel):
    id: int
    slug: str
    name: str
    description: Optional[str] = None
    department: Optional[RoleDepartment] = None
    is_system: bool
    can_create_roles: bool
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    permissions: List[PermissionOut] = []

    class Config:
        from_attributes = True

class RoleAssignRequest(BaseModel):
    role_id: Optional[int] = None


# ---- User ----
class AdminUserOut(BaseModel):
    id: int
    uuid: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    status: str
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    role_slug: Optional[str] = None
    is_super_admin: bool = False
    created_at: Optional[datetime] = None


# ---- Pricing ----
class DatacenterOut(BaseModel):
    id: str
    name: str
    flag: Optional[str] = None

class QuoteOut(BaseModel):
    monthly_base: float
    discount_fraction: float
    term_months: int
    monthly_effective: float
    total_for_term: float
    datacenter: Optional[DatacenterOut] = None


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    actor_email: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    detail: Optional[Any] = None

class CreatedResponse(BaseModel):
    message: str
    id: int
    slug: Optional[str] = None
