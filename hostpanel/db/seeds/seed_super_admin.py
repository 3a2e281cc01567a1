"""Seed the super-admin user from env vars."""

from sqlalchemy.orm import Session
from hostpanel.models.user import User, UserRoleEnum, UserStatusEnum
from hostpanel.models.role import Role
from hostpanel.core.security import hash_password
from hostpanel.core.config import settings


def seed_super_admin(db: Session) -> None:
    """Create the super-admin user if not already present."""
    super_admin_role = db.query(Role).filter(Role.slug == "super_admin").first()
    if not super_admin_role:
        print("super_admin role not found. Run seed_roles first.")
        return

    existing = db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).first()
    if existing:
        print(f"Super admin '{settings.SUPER_ADMIN_EMAIL}' already exists, skipping.")
        return

    admin = User(
        email=settings.SUPER_ADMIN_EMAIL,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        first_name="Super",
        last_name="Admin",
        role=UserRoleEnum.admin,
        status=UserStatusEnum.active,
        role_id=super_admin_role.id,
    )
    db.add(admin)
    db.commit()
    print(f"Created super admin: {settings.SUPER_ADMIN_EMAIL}")
