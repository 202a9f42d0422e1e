from datetime import date
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.database import get_db
from hardtrack.core.auth import get_current_user
from hardtrack.schemas.entry import DailyEntryResponse, DailyEntrySave
from hardtrack.schemas.fitness import SuggestionResponse
from hardtrack.services.challenges import get_visible_challenge, get_tasks
from hardtrack.services.entries import check_entry_date, get_entries, get_entry, save_entry, set_entry_image
from hardtrack.services.fitness import auto_populate_task_completions
from hardtrack.services.storage import upload_progress_image
from hardtrack.utils.dates import local_today

router = APIRouter(prefix="/challenges/{challenge_id}/entries", tags=["check-in"])


@router.get("", response_model=List[DailyEntryResponse])
async def list_entries(
    challenge_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    await get_visible_challenge(db, challenge_id, current_user)
    return await get_entries(db, challenge_id, current_user.id)


@router.get("/{day}", response_model=DailyEntryResponse)
async def read_entry(
    challenge_id: int,
    day: date,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    await get_visible_challenge(db, challenge_id, current_user)
    return await get_entry(db, challenge_id, current_user.id, day)


@router.put("/{day}", response_model=DailyEntryResponse)
async def check_in(
    challenge_id: int,
    day: date,
    entry_in: DailyEntrySave,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await get_visible_challenge(db, challenge_id, current_user)
    return await save_entry(db, challenge, current_user, day, entry_in, local_today(current_user.timezone))


@router.post("/{day}/image", response_model=DailyEntryResponse)
async def upload_image(
    challenge_id: int,
    day: date,
    image: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await get_visible_challenge(db, challenge_id, current_user)
    today = local_today(current_user.timezone)
    # a rejected date must not leave an orphaned file in storage
    check_entry_date(challenge, day, today)
    content = await image.read()
    url = await upload_progress_image(current_user.id, image.filename, content, image.content_type)
    return await set_entry_image(db, challenge, current_user, day, url, today)


@router.get("/{day}/suggestions", response_model=SuggestionResponse)
async def suggest_completions(
    challenge_id: int,
    day: date,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Task values prefilled from the day's synced fitness activities."""
    challenge = await get_visible_challenge(db, challenge_id, current_user)
    tasks = await get_tasks(db, challenge.id)
    strategy, metrics, suggestions = await auto_populate_task_completions(
        db, current_user, challenge.id, day, tasks
    )
    return SuggestionResponse(date=day, strategy=strategy, metrics=metrics, suggestions=suggestions)
