from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.database import get_db
from hardtrack.core.auth import get_current_user
from hardtrack.schemas.challenge import JoinPreviewResponse, JoinResponse
from hardtrack.schemas.progress import MemberProgress
from hardtrack.services.challenges import (
    count_members, get_challenge_by_token, get_member_progress, get_profile,
    get_visible_challenge, join_challenge,
)

router = APIRouter(tags=["friends"])


@router.get("/join/{token}", response_model=JoinPreviewResponse)
async def preview_invite(
    token: str,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await get_challenge_by_token(db, token)
    owner = await get_profile(db, challenge.user_id)
    return JoinPreviewResponse(
        challenge_id=challenge.id,
        name=challenge.name,
        owner_name=(owner.display_name if owner else None) or "Anonymous",
        start_date=challenge.start_date,
        duration_days=challenge.duration_days,
        member_count=await count_members(db, challenge.id),
    )


@router.post("/join/{token}", response_model=JoinResponse, status_code=status.HTTP_201_CREATED)
async def join(
    token: str,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await join_challenge(db, current_user, token)
    return JoinResponse(challenge_id=challenge.id, message="Joined challenge!")


@router.get("/challenges/{challenge_id}/members", response_model=List[MemberProgress])
async def list_members(
    challenge_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await get_visible_challenge(db, challenge_id, current_user)
    return await get_member_progress(db, challenge)
