from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.database import get_db
from hardtrack.core.auth import get_current_user
from hardtrack.schemas.progress import ProgressStats, CalendarDay
from hardtrack.services.challenges import get_visible_challenge, get_tasks
from hardtrack.services.entries import get_entries
from hardtrack.services.progress import calculate_progress_stats, completed_dates_of
from hardtrack.services.streaks import build_calendar
from hardtrack.utils.dates import local_today

router = APIRouter(prefix="/challenges/{challenge_id}", tags=["progress"])


@router.get("/progress", response_model=ProgressStats)
async def get_progress(
    challenge_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await get_visible_challenge(db, challenge_id, current_user)
    tasks = await get_tasks(db, challenge.id)
    entries = await get_entries(db, challenge.id, current_user.id)
    return calculate_progress_stats(
        challenge.start_date,
        challenge.duration_days,
        tasks,
        entries,
        today=local_today(current_user.timezone),
    )


@router.get("/calendar", response_model=List[CalendarDay])
async def get_calendar(
    challenge_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await get_visible_challenge(db, challenge_id, current_user)
    entries = await get_entries(db, challenge.id, current_user.id)
    return build_calendar(
        challenge.start_date,
        challenge.duration_days,
        completed_dates_of(entries),
        today=local_today(current_user.timezone),
    )
