import os

# Settings are read once at import time, so they must be in place before any app module loads
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["FREEZE_SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["ENVIRONMENT"] = "production"

from datetime import datetime, timedelta, timezone

import httpx
import jwt
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core import config
from app.core.database.base import generate_uuid
from app.core.database.engine import get_db, init_db
from app.features.organizations.models import (
    Organization,
    OrganizationMember,
    OrganizationRole,
    OrganizationType,
)
from app.features.seats.models import Seat, SeatPackage, SeatPackageStatus
from app.features.users.models import AppRole, Profile
from app.main import app


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
    app.dependency_overrides.clear()


def make_token(user_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    payload = {"sub": user_id, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


class Factory:
    """Builds committed rows for tests."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._roles: dict[str, int] = {}
        self._type_id = None
        self._app_roles: dict[str, AppRole] = {}
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def profile(self, full_name: str = "Test User", app_role: str | None = None) -> Profile:
        n = self._next()
        profile = Profile(id=generate_uuid(), email=f"user{n}@example.com", full_name=full_name)
        if app_role:
            if app_role not in self._app_roles:
                self._app_roles[app_role] = AppRole(id=generate_uuid(), name=app_role)
            profile.roles = [self._app_roles[app_role]]
        self.db.add(profile)
        await self.db.commit()
        return profile

    async def residential_type(self) -> int:
        if self._type_id is None:
            org_type = OrganizationType(name="residential", description="Residential community")
            self.db.add(org_type)
            await self.db.flush()
            for name in ("admin", "resident", "security", "security_personnel"):
                role = OrganizationRole(name=name, organization_type_id=org_type.id)
                self.db.add(role)
                await self.db.flush()
                self._roles[name] = role.id
            await self.db.commit()
            self._type_id = org_type.id
        return self._type_id

    async def organization(self, name: str | None = None, is_frozen: bool = False) -> Organization:
        type_id = await self.residential_type()
        org = Organization(
            id=generate_uuid(),
            name=name or f"Community {self._next()}",
            organization_type_id=type_id,
            is_frozen=is_frozen,
        )
        self.db.add(org)
        await self.db.commit()
        return org

    async def member(self, user: Profile, org: Organization, role: str) -> OrganizationMember:
        await self.residential_type()
        member = OrganizationMember(
            id=generate_uuid(),
            user_id=user.id,
            organization_id=org.id,
            organization_role_id=self._roles[role],
        )
        self.db.add(member)
        await self.db.commit()
        return member

    async def package(
        self,
        org: Organization,
        seat_limit: int,
        starts_at: datetime | None = None,
        ends_at: datetime | None = None,
        status: SeatPackageStatus = SeatPackageStatus.ACTIVE,
    ) -> SeatPackage:
        package = SeatPackage(
            id=generate_uuid(),
            organization_id=org.id,
            seat_limit=seat_limit,
            starts_at=starts_at,
            ends_at=ends_at,
            status=status,
        )
        self.db.add(package)
        await self.db.commit()
        return package

    async def seats(self, org: Organization, count: int) -> list[Seat]:
        seats = [
            Seat(id=generate_uuid(), organization_id=org.id, occupant_id=generate_uuid())
            for _ in range(count)
        ]
        self.db.add_all(seats)
        await self.db.commit()
        return seats


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def auth_headers():
    return auth


@pytest.fixture
def token_for():
    return make_token
