import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy import select, delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.models.challenge import Challenge, Task
from hardtrack.models.entry import DailyEntry, TaskCompletion
from hardtrack.models.profile import Profile
from hardtrack.schemas.entry import DailyEntryResponse, DailyEntrySave, TaskCompletionResponse
from hardtrack.services.challenges import get_tasks
from hardtrack.utils.dates import date_from_day_number

logger = logging.getLogger(__name__)


def to_response(entry: DailyEntry, completions: Sequence[TaskCompletion]) -> DailyEntryResponse:
    return DailyEntryResponse(
        id=entry.id,
        challenge_id=entry.challenge_id,
        user_id=entry.user_id,
        date=entry.date,
        note=entry.note,
        image_url=entry.image_url,
        is_complete=entry.is_complete,
        task_completions=[TaskCompletionResponse.model_validate(c) for c in completions],
    )


async def completions_by_entry(db: AsyncSession, entry_ids: Sequence[int]) -> Dict[int, List[TaskCompletion]]:
    grouped: Dict[int, List[TaskCompletion]] = {entry_id: [] for entry_id in entry_ids}
    if not entry_ids:
        return grouped
    result = await db.execute(
        select(TaskCompletion)
        .where(TaskCompletion.daily_entry_id.in_(entry_ids))
        .order_by(TaskCompletion.id)
    )
    for completion in result.scalars().all():
        grouped[completion.daily_entry_id].append(completion)
    return grouped


async def get_entries(db: AsyncSession, challenge_id: int, user_id: str) -> List[DailyEntryResponse]:
    """All of one user's entries for a challenge, newest first."""
    result = await db.execute(
        select(DailyEntry)
        .where(DailyEntry.challenge_id == challenge_id)
        .where(DailyEntry.user_id == user_id)
        .order_by(DailyEntry.date.desc())
    )
    entries = result.scalars().all()
    grouped = await completions_by_entry(db, [e.id for e in entries])
    return [to_response(e, grouped[e.id]) for e in entries]


async def find_entry(db: AsyncSession, challenge_id: int, user_id: str, day: date) -> Optional[DailyEntry]:
    result = await db.execute(
        select(DailyEntry)
        .where(DailyEntry.challenge_id == challenge_id)
        .where(DailyEntry.user_id == user_id)
        .where(DailyEntry.date == day)
    )
    return result.scalar_one_or_none()


async def get_entry(db: AsyncSession, challenge_id: int, user_id: str, day: date) -> DailyEntryResponse:
    """The saved entry, or an empty one when nothing was saved for that day yet."""
    entry = await find_entry(db, challenge_id, user_id, day)
    if entry is None:
        return DailyEntryResponse(challenge_id=challenge_id, user_id=user_id, date=day)
    grouped = await completions_by_entry(db, [entry.id])
    return to_response(entry, grouped[entry.id])


def check_entry_date(challenge: Challenge, day: date, today: date) -> None:
    last_day = date_from_day_number(challenge.start_date, challenge.duration_days)
    if day < challenge.start_date or day > last_day:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Date is outside the challenge")
    if day > today:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Cannot check in for a future date")


def normalize_completion(task: Task, value: float, is_completed: bool):
    if task.type == "checkbox":
        done = bool(is_completed or value >= 1)
        return (1.0 if done else 0.0), done
    return value, value >= task.target_value


def is_entry_complete(tasks: Sequence[Task], completed_task_ids) -> bool:
    return all(t.id in completed_task_ids for t in tasks if t.is_required)


def entry_insert(db: AsyncSession):
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert(DailyEntry)
    return pg_insert(DailyEntry)


async def upsert_entry(db: AsyncSession, challenge_id: int, user_id: str, day: date) -> DailyEntry:
    """Create the day's entry unless it exists already, then load it.

    Two devices saving the same day race on the unique (challenge, user, date)
    key, so the insert skips on conflict instead of checking first.
    """
    await db.execute(
        entry_insert(db)
        .values(challenge_id=challenge_id, user_id=user_id, date=day, is_complete=False)
        .on_conflict_do_nothing(index_elements=["challenge_id", "user_id", "date"])
    )
    return await find_entry(db, challenge_id, user_id, day)


async def save_entry(
    db: AsyncSession, challenge: Challenge, user: Profile, day: date, data: DailyEntrySave, today: date
) -> DailyEntryResponse:
    """Upsert the day's entry and replace all of its completions in one transaction."""
    check_entry_date(challenge, day, today)

    tasks = {t.id: t for t in await get_tasks(db, challenge.id)}
    unknown = sorted({c.task_id for c in data.task_completions if c.task_id not in tasks})
    if unknown:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Tasks not in this challenge: {unknown}")

    # last value wins when a task is sent twice
    values = {}
    for completion in data.task_completions:
        values[completion.task_id] = normalize_completion(
            tasks[completion.task_id], completion.value, completion.is_completed
        )

    # rollback expires the ORM objects, so keep plain ids for logging and the reload
    challenge_id, user_id = challenge.id, user.id
    try:
        entry = await upsert_entry(db, challenge_id, user_id, day)
        for field in ("note", "image_url"):
            if field in data.model_fields_set:
                setattr(entry, field, getattr(data, field))

        await db.execute(delete(TaskCompletion).where(TaskCompletion.daily_entry_id == entry.id))
        for task_id, (value, done) in values.items():
            db.add(TaskCompletion(daily_entry_id=entry.id, task_id=task_id, value=value, is_completed=done))

        entry.is_complete = is_entry_complete(
            tasks.values(), {task_id for task_id, (_, done) in values.items() if done}
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Saving entry for challenge %s on %s failed", challenge_id, day)
        raise

    return await get_entry(db, challenge_id, user_id, day)


async def set_entry_image(
    db: AsyncSession, challenge: Challenge, user: Profile, day: date, image_url: str, today: date
) -> DailyEntryResponse:
    check_entry_date(challenge, day, today)
    entry = await upsert_entry(db, challenge.id, user.id, day)
    entry.image_url = image_url
    await db.commit()
    return await get_entry(db, challenge.id, user.id, day)
