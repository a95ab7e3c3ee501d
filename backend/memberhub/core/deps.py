"""
Request dependencies: current user resolution from bearer tokens.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.exceptions import AuthenticationError, AuthorizationError
from memberhub.core.security import verify_token
from memberhub.db.base import get_db
from memberhub.models.user import User, UserStatus

bearer_scheme = HTTPBearer(auto_error=False)


async def _load_user(db: AsyncSession, token: str) -> Optional[User]:
    user_id = verify_token(token)
    if user_id is None:
        return None
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the authenticated, active user or fail with 401/403."""
    if credentials is None:
        raise AuthenticationError("No token provided")

    user = await _load_user(db, credentials.credentials)
    if user is None:
        raise AuthenticationError("Invalid token")

    if user.status != UserStatus.ACTIVE:
        raise AuthorizationError("Account is not active")

    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous or unusable tokens yield None."""
    if credentials is None:
        return None
    user = await _load_user(db, credentials.credentials)
    if user is None or user.status != UserStatus.ACTIVE:
        return None
    return user


def request_meta(request: Request) -> dict[str, Optional[str]]:
    """Caller address and user agent recorded on audit entries."""
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }
