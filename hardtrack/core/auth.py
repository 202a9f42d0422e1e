import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from hardtrack.database import get_db
from hardtrack.models.profile import Profile
from hardtrack.config import settings

logger = logging.getLogger(__name__)

reusable_oauth2 = HTTPBearer(auto_error=False)


async def find_profile(db: AsyncSession, user_id: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()


async def provision_profile(db: AsyncSession, user_id: str, email: Optional[str]) -> Profile:
    profile = Profile(
        id=user_id,
        email=email,
        timezone=settings.DEFAULT_TIMEZONE,
        reminder_enabled=True,
        reminder_time="20:00",
    )
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        # parallel first requests both miss the lookup; the loser reads the winner's row
        await db.rollback()
        return await find_profile(db, user_id)
    await db.refresh(profile)
    logger.info("Provisioned profile for %s", user_id)
    return profile


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    token: Optional[HTTPAuthorizationCredentials] = Depends(reusable_oauth2)
) -> Profile:
    """Resolve the caller from a token issued by the external auth service.

    The first request of a new user provisions their profile with defaults.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if token is None:
        raise credentials_exception
    try:
        payload = jwt.decode(
            token.credentials,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_aud": False},
        )
        user_id: str = payload.get("sub")
        if not user_id:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    profile = await find_profile(db, user_id)
    if profile is None:
        profile = await provision_profile(db, user_id, payload.get("email"))
    elif payload.get("email") and profile.email != payload.get("email"):
        profile.email = payload.get("email")
        await db.commit()
    return profile


async def require_cron_secret(
    token: Optional[HTTPAuthorizationCredentials] = Depends(reusable_oauth2)
) -> None:
    if not settings.CRON_SECRET:
        return
    if token is None or not secrets.compare_digest(token.credentials, settings.CRON_SECRET):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthorized")
