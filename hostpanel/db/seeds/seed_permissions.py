"""Seed the permission catalog into the database."""

from sqlalchemy.orm import Session
from hostpanel.models.role import Permission

DEPARTMENTS = {
    "users": ("Users", ["view", "create", "edit", "delete"]),
    "orders": ("Orders", ["view", "create", "edit", "delete"]),
    "tickets": ("Support Tickets", ["view", "reply", "close", "delete"]),
    "settings": ("Settings", ["view", "edit"]),
    "pricing": ("Pricing & Plans", ["view", "edit"]),
    "content": ("Pages & Content", ["view", "edit", "delete"]),
    "invoices": ("Invoices", ["view", "create", "edit", "delete"]),
    "proposals": ("Proposals", ["view", "create", "edit", "delete"]),
    "domains": ("Domains", ["view", "edit"]),
    "email": ("Email", ["view", "send"]),
    "server": ("Server Management", ["view", "manage"]),
    "roles": ("Roles & Permissions", ["view", "create", "edit", "delete"]),
}


def permission_catalog() -> list[dict]:
    """Every seeded permission as column values."""
    catalog = []
    for department, (label, actions) in DEPARTMENTS.items():
        for action in actions:
            catalog.append({
                "slug": f"{department}.{action}",
                "name": f"{action.replace('_', ' ').title()} {label}",
                "department": department,
                "description": f"Can {action.replace('_', ' ')} {label.lower()}",
            })
    return catalog


def seed_permissions(db: Session) -> None:
    """Insert permissions that don't already exist."""
    existing = {slug for (slug,) in db.query(Permission.slug).all()}
    catalog = permission_catalog()
    for data in catalog:
        if data["slug"] not in existing:
            db.add(Permission(**data))

    db.commit()
    print(f"Seeded {len(catalog)} permissions")
