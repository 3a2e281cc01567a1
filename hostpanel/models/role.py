"""Role, Permission and role/permission join models for RBAC."""

import enum

from sqlalchemy import (
    Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Table, Text, func,
)
from sqlalchemy.orm import relationship

from hostpanel.db.base import Base


class RoleDepartment(str, enum.Enum):
    management = "management"
    sales = "sales"
    support = "support"
    billing = "billing"
    technical = "technical"
    content = "content"


role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Permission(Base):
    """Atomic capability of the form ``department.action``. Seed data only."""
    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    department = Column(String(50), nullable=False, index=True)
    description = Column(String(255), nullable=True)

    roles = relationship("Role", secondary=role_permissions, back_populates="permissions")


class Role(Base):
    """Named bundle of permissions assignable to a user."""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    department = Column(Enum(RoleDepartment), nullable=True)
    is_system = Column(Boolean, default=False, nullable=False)
    can_create_roles = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, nullable=True)  # users.id; no FK since users.role_id points here
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    permissions = relationship(
        "Permission",
        secondary=role_permissions,
        back_populates="roles",
        lazy="selectin",
        order_by="Permission.slug",
    )

    @property
    def permission_slugs(self) -> list[str]:
        return [p.slug for p in self.permissions]
