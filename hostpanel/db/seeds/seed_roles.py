"""Seed default roles into the database."""

from sqlalchemy.orm import Session
from hostpanel.models.role import Permission, Role, RoleDepartment


def seed_roles(db: Session) -> None:
    """Insert default roles if they don't already exist.

    ``super_admin`` is the only system role and receives every permission.
    """
    permissions = {p.slug: p for p in db.query(Permission).all()}

    roles_data = [
        {
            "slug": "super_admin",
            "name": "Super Admin",
            "description": "Full system access, manage everything",
            "department": RoleDepartment.management,
            "is_system": True,
            "can_create_roles": True,
            "permissions": sorted(permissions),
        },
        {
            "slug": "support_agent",
            "name": "Support Agent",
            "description": "Answer tickets and look up customers",
            "department": RoleDepartment.support,
            "permissions": ["tickets.view", "tickets.reply", "tickets.close", "users.view", "orders.view"],
        },
        {
            "slug": "billing_manager",
            "name": "Billing Manager",
            "description": "Manage orders, invoices and pricing",
            "department": RoleDepartment.billing,
            "permissions": [
                "orders.view", "orders.edit", "invoices.view", "invoices.create",
                "invoices.edit", "pricing.view", "pricing.edit",
            ],
        },
        {
            "slug": "content_editor",
            "name": "Content Editor",
            "description": "Edit pages and site content",
            "department": RoleDepartment.content,
            "permissions": ["content.view", "content.edit", "content.delete"],
        },
        {
            "slug": "team_manager",
            "name": "Team Manager",
            "description": "Manage admin staff and create delegated roles",
            "department": RoleDepartment.management,
            "can_create_roles": True,
            "permissions": ["users.view", "users.edit", "roles.view", "roles.edit"],
        },
    ]

    for role_data in roles_data:
        existing = db.query(Role).filter(Role.slug == role_data["slug"]).first()
        if existing:
            continue
        slugs = role_data.pop("permissions")
        db.add(Role(**role_data, permissions=[permissions[s] for s in slugs if s in permissions]))

    db.commit()
    print(f"Seeded {len(roles_data)} roles")
