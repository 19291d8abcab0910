import logging
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from carelog.api.db.database import get_db
from carelog.api.modules.v1.users.models.users_model import Profile
from carelog.api.modules.v1.users.schemas.actor_schema import Actor
from carelog.api.utils.jwt import decode_token

logger = logging.getLogger("app")

# HTTP Bearer token extraction
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """
    Extract and validate the JWT bearer token and return the authenticated profile.

    Raises:
        HTTPException: 401 if authentication fails
    """
    token = credentials.credentials

    try:
        payload = decode_token(token)
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token"
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload"
        )

    try:
        profile_id = UUID(str(user_id))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload"
        )

    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    profile = result.scalar_one_or_none()

    if not profile:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    logger.info(f"Authenticated user: {profile.email}")
    return profile


async def get_current_actor(current_user: Profile = Depends(get_current_user)) -> Actor:
    """Build the explicit actor passed into ticket operations."""
    return Actor.from_profile(current_user)


async def require_platform_staff(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Reject callers that are not platform staff."""
    if not actor.is_platform_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only platform staff can perform this action",
        )
    return actor
