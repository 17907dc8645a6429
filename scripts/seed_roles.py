"""
Seed script to populate organization types, roles and default flags.

Run this script after database initialization to create:
- The residential organization type and its member roles
- The app-level admin role
- Default feature flags (assigned to nobody)

Safe to run repeatedly; existing rows are left untouched.

Usage:
    python -m scripts.seed_roles
"""
import asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db, init_db
from app.features.flags.models import FeatureFlag
from app.features.organizations.models import OrganizationRole, OrganizationType
from app.features.permissions.evaluator import OrgRole
from app.features.users.models import AppRole
from app.features.users.store import APP_ADMIN_ROLE
from app.utils import get_logger


log = get_logger(__name__)


DEFAULT_ORGANIZATION_TYPES = {
    "residential": {
        "description": "Residential community with residents and security staff",
        "roles": {
            OrgRole.ADMIN: "Manages members, seats and organization settings",
            OrgRole.RESIDENT: "Lives in the community and invites guests",
            OrgRole.SECURITY: "Validates guest access at the gate",
        },
    },
}

DEFAULT_FLAGS = [
    ("beta_features", "Early access to features under development"),
    ("guest_chat", "Chat between residents and security staff"),
]


async def seed_organization_types(db: AsyncSession) -> None:
    log.info("Creating organization types and roles...")
    for type_name, type_config in DEFAULT_ORGANIZATION_TYPES.items():
        result = await db.execute(select(OrganizationType).where(OrganizationType.name == type_name))
        org_type = result.scalars().first()
        if org_type is None:
            org_type = OrganizationType(name=type_name, description=type_config["description"])
            db.add(org_type)
            await db.flush()
            log.info(f"Created organization type: {type_name}")
        else:
            log.debug(f"Organization type '{type_name}' already exists, skipping")

        for role_name, description in type_config["roles"].items():
            result = await db.execute(
                select(OrganizationRole).where(
                    OrganizationRole.organization_type_id == org_type.id,
                    OrganizationRole.name == role_name,
                )
            )
            if result.scalars().first():
                log.debug(f"Role '{type_name}/{role_name}' already exists, skipping")
                continue
            db.add(OrganizationRole(
                name=role_name,
                description=description,
                organization_type_id=org_type.id,
            ))
            log.info(f"Created role: {type_name}/{role_name}")
    await db.commit()


async def seed_app_roles(db: AsyncSession) -> None:
    result = await db.execute(select(AppRole).where(AppRole.name == APP_ADMIN_ROLE))
    if result.scalars().first():
        log.debug(f"App role '{APP_ADMIN_ROLE}' already exists, skipping")
        return
    db.add(AppRole(name=APP_ADMIN_ROLE))
    await db.commit()
    log.info(f"Created app role: {APP_ADMIN_ROLE}")


async def seed_flags(db: AsyncSession) -> None:
    for name, description in DEFAULT_FLAGS:
        result = await db.execute(select(FeatureFlag).where(FeatureFlag.name == name))
        if result.scalars().first():
            log.debug(f"Flag '{name}' already exists, skipping")
            continue
        db.add(FeatureFlag(name=name, description=description))
        log.info(f"Created flag: {name}")
    await db.commit()


async def seed_all(db: AsyncSession) -> None:
    await seed_organization_types(db)
    await seed_app_roles(db)
    await seed_flags(db)


async def main():
    """Main function to seed roles and flags."""
    log.info("Starting seeding...")

    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()

    # Get database session
    async for db in get_db():
        try:
            await seed_all(db)
            log.info("Seeding completed successfully!")
        except Exception as e:
            log.error(f"Error seeding roles: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
