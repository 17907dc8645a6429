"""
Authentication utilities for identity provider JWT verification.
"""
from typing import Optional
import jwt

from app.core import config
from app.core.errors import NotAuthenticated
from app.core.validation import is_valid_uuid
from app.utils import get_logger


log = get_logger(__name__)


def verify_jwt_token(token: str) -> dict:
    """
    Verify an identity provider JWT and return its payload.

    Args:
        token: JWT token from Authorization header

    Returns:
        Decoded JWT payload containing user information

    Raises:
        NotAuthenticated: If no secret is configured or the token is invalid or expired
    """
    if not config.JWT_SECRET:
        log.error("JWT_SECRET is not configured; rejecting token")
        raise NotAuthenticated()

    try:
        return jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[config.JWT_ALGORITHM],
            options={"verify_exp": True, "verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise NotAuthenticated("Token has expired.")
    except jwt.InvalidTokenError as e:
        log.info(f"Invalid token: {e}")
        raise NotAuthenticated("Invalid token.")


def user_id_from_payload(payload: dict) -> Optional[str]:
    user_id = payload.get("sub") or payload.get("userId")
    if not is_valid_uuid(user_id):
        return None
    return user_id.strip()
