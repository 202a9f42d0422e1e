from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.database import get_db
from hardtrack.core.auth import get_current_user
from hardtrack.models.profile import Profile
from hardtrack.schemas.profile import ProfileUpdate, ProfileResponse, TimezoneOption
from hardtrack.utils.dates import TIMEZONES

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("/me", response_model=ProfileResponse)
async def read_profile(current_user: Profile = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=ProfileResponse)
async def update_profile(
    profile_in: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user)
):
    for field, value in profile_in.model_dump(exclude_unset=True).items():
        if value is None and field != "display_name":
            continue
        setattr(current_user, field, value)
    db.add(current_user)
    await db.commit()
    await db.refresh(current_user)
    return current_user


@router.get("/timezones", response_model=List[TimezoneOption])
async def list_timezones():
    return TIMEZONES
