"""
Authentication dependencies for the LearnQuest backend.

Sessions are issued by the platform's auth service, which forwards the
learner's id as the bearer token. These dependencies only read that id
and check it against the configured administrators.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from backend.common.config import get_config
from backend.common.logger import app_logger

logger = app_logger.getChild("auth")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """
    Read the learner id from an ``Authorization: Bearer <user-id>`` header.

    Raises:
        HTTPException: 401 if the header is missing or not a bearer token
    """
    if not authorization:
        raise _unauthorized("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2:
        raise _unauthorized("Invalid authorization header format")

    scheme, user_id = parts
    if scheme.lower() != "bearer":
        raise _unauthorized("Invalid authentication scheme")

    return user_id


async def require_admin(user_id: str = Depends(get_current_user_id)) -> str:
    """
    Allow only ids listed in ``SECURITY_ADMIN_USER_IDS``.

    Raises:
        HTTPException: 403 for everyone else
    """
    if user_id not in get_config().security.admin_user_ids:
        logger.warning(f"User {user_id} denied admin access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required"
        )
    return user_id
