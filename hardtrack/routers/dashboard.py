from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.database import get_db
from hardtrack.core.auth import get_current_user
from hardtrack.models.entry import DailyEntry
from hardtrack.schemas.progress import DashboardChallenge, DashboardResponse
from hardtrack.services.challenges import get_tasks, list_user_challenges
from hardtrack.services.entries import get_entries
from hardtrack.services.progress import calculate_progress_stats
from hardtrack.utils.dates import day_number, local_today

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def today_status(entry, current_day: int, total_days: int) -> str:
    if current_day < 1 or current_day > total_days:
        return "not_active"
    if entry is None:
        return "not_started"
    return "complete" if entry.is_complete else "in_progress"


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    today = local_today(current_user.timezone)
    challenges = await list_user_challenges(db, current_user)

    # today's entries across every challenge at once
    todays = await db.execute(
        select(DailyEntry)
        .where(DailyEntry.user_id == current_user.id)
        .where(DailyEntry.date == today)
    )
    entry_by_challenge = {e.challenge_id: e for e in todays.scalars().all()}

    items = []
    for challenge in challenges:
        tasks = await get_tasks(db, challenge.id)
        entries = await get_entries(db, challenge.id, current_user.id)
        stats = calculate_progress_stats(
            challenge.start_date, challenge.duration_days, tasks, entries, today=today
        )
        current_day = day_number(challenge.start_date, today)
        items.append(
            DashboardChallenge(
                challenge_id=challenge.id,
                name=challenge.name,
                is_owner=challenge.user_id == current_user.id,
                start_date=challenge.start_date,
                day_number=min(max(current_day, 0), challenge.duration_days),
                total_days=challenge.duration_days,
                today_status=today_status(
                    entry_by_challenge.get(challenge.id), current_day, challenge.duration_days
                ),
                current_streak=stats.current_streak,
                completion_percentage=stats.completion_percentage,
                days_remaining=stats.days_remaining,
            )
        )
    return DashboardResponse(today=today, challenges=items)
