"""
Engine and session factory for the membership, seat and flag store.

Any SQLAlchemy async URL works; SQLite via aiosqlite is the default. Calls
through `app.core.database.store.bounded` are capped at STORE_TIMEOUT_SECONDS,
and SQLite's own lock wait uses the same bound.
"""
from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.core import config


_is_sqlite = config.SQLALCHEMY_DATABASE_URL.startswith("sqlite")

engine = create_async_engine(
    config.SQLALCHEMY_DATABASE_URL,
    poolclass=NullPool if _is_sqlite else None,
    connect_args={"timeout": config.STORE_TIMEOUT_SECONDS} if _is_sqlite else {},
    echo=False,
)

# Objects stay readable after commit; recompute and routes read them back
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request. Uncommitted work is rolled back on error.

    Usage in FastAPI routes:
        @router.get("/{organization_id}/seats")
        async def list_seats(db: Annotated[AsyncSession, Depends(get_db)]):
            return await SeatCapacityManager(db).list_seats(organization_id)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def import_models() -> None:
    """Register every table on Base.metadata."""
    from app.features.users.models import Profile, AppRole  # noqa: F401
    from app.features.organizations.models import (  # noqa: F401
        OrganizationType, OrganizationRole, Organization, OrganizationMember
    )
    from app.features.seats.models import Seat, SeatPackage, AuditLog  # noqa: F401
    from app.features.flags.models import FeatureFlag  # noqa: F401


async def init_db(bind=None):
    """
    Create missing tables on `bind`, or on the application engine.

    Called on startup, by the scripts, and by tests against their own engine.
    """
    from app.core.database.base import Base

    import_models()

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
