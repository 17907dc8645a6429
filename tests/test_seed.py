from sqlalchemy import func, select

from app.features.flags.models import FeatureFlag
from app.features.organizations.models import OrganizationRole, OrganizationType
from app.features.users.models import AppRole
from scripts.seed_roles import DEFAULT_FLAGS, seed_all


async def count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def test_seeding_is_idempotent(db):
    await seed_all(db)
    await seed_all(db)

    assert await count(db, OrganizationType) == 1
    assert await count(db, OrganizationRole) == 3
    assert await count(db, AppRole) == 1
    assert await count(db, FeatureFlag) == len(DEFAULT_FLAGS)

    result = await db.execute(select(OrganizationRole.name).order_by(OrganizationRole.name))
    assert result.scalars().all() == ["admin", "resident", "security"]
