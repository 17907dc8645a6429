"""
Route guard dependencies.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.access.guard import RouteAccessGuard
from app.features.seats.manager import SeatCapacityManager
from app.features.users.store import IdentityStore


def get_route_guard(db: Annotated[AsyncSession, Depends(get_db)]) -> RouteAccessGuard:
    """One guard per request; FastAPI reuses it for every dependency in the request."""
    return RouteAccessGuard(IdentityStore(db), SeatCapacityManager(db))
