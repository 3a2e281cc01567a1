"""Models package: import all models so metadata.create_all can discover them."""

from hostpanel.models.role import Role, Permission, RoleDepartment, role_permissions
from hostpanel.models.user import User, UserRoleEnum, UserStatusEnum
from hostpanel.models.audit_log import AuditLog
from hostpanel.models.system_setting import SystemSetting

__all__ = [
    "Role", "Permission", "RoleDepartment", "role_permissions",
    "User", "UserRoleEnum", "UserStatusEnum",
    "AuditLog", "SystemSetting",
]
