"""
Bounded access to the backing store.

Every read or write the authorization core performs goes through `bounded`,
so a slow or failing store surfaces as UpstreamUnavailable instead of a hang
or a driver-specific exception. Constraint violations (IntegrityError) pass
through unchanged. Callers decide whether unavailability means denial
(authorization paths) or an empty result (feature flags).
"""
import asyncio
from typing import Awaitable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core import config
from app.core.errors import UpstreamUnavailable
from app.utils import get_logger


log = get_logger(__name__)

T = TypeVar("T")


async def bounded(awaitable: Awaitable[T], what: str = "store call", timeout: Optional[float] = None) -> T:
    limit = config.STORE_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        return await asyncio.wait_for(awaitable, timeout=limit)
    except asyncio.TimeoutError:
        log.warning("Store timeout after %.2fs during %s", limit, what)
        raise UpstreamUnavailable()
    except IntegrityError:
        # Constraint violations are the caller's to report as bad input
        raise
    except SQLAlchemyError as e:
        log.error("Store failure during %s: %s", what, e)
        raise UpstreamUnavailable()
