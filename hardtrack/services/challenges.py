import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.models.challenge import Challenge, Task, ChallengeMember
from hardtrack.models.entry import DailyEntry, TaskCompletion
from hardtrack.models.fitness import FitnessTaskMapping
from hardtrack.models.profile import Profile
from hardtrack.schemas.challenge import ChallengeCreate, ChallengeUpdate, ChallengeWithTasksResponse
from hardtrack.schemas.progress import MemberProgress
from hardtrack.schemas.task import DEFAULT_TASKS, TaskCreate, TaskUpdate, TaskOrderItem, TaskResponse
from hardtrack.services.streaks import calculate_streak
from hardtrack.utils.dates import local_today
from hardtrack.utils.tokens import generate_invite_token

logger = logging.getLogger(__name__)


def with_tasks(challenge: Challenge, tasks: Sequence[Task], user: Profile) -> ChallengeWithTasksResponse:
    return ChallengeWithTasksResponse(
        id=challenge.id,
        user_id=challenge.user_id,
        name=challenge.name,
        start_date=challenge.start_date,
        duration_days=challenge.duration_days,
        invite_token=challenge.invite_token,
        created_at=challenge.created_at,
        tasks=[TaskResponse.model_validate(t) for t in tasks],
        is_owner=challenge.user_id == user.id,
    )


async def new_invite_token(db: AsyncSession) -> str:
    while True:
        token = generate_invite_token()
        taken = await db.execute(select(Challenge.id).where(Challenge.invite_token == token))
        if taken.scalar_one_or_none() is None:
            return token


async def get_challenge_or_404(db: AsyncSession, challenge_id: int) -> Challenge:
    result = await db.execute(select(Challenge).where(Challenge.id == challenge_id))
    challenge = result.scalar_one_or_none()
    if not challenge:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Challenge not found")
    return challenge


async def is_member(db: AsyncSession, challenge_id: int, user_id: str) -> bool:
    result = await db.execute(
        select(ChallengeMember.id)
        .where(ChallengeMember.challenge_id == challenge_id)
        .where(ChallengeMember.user_id == user_id)
    )
    return result.scalar_one_or_none() is not None


async def get_visible_challenge(db: AsyncSession, challenge_id: int, user: Profile) -> Challenge:
    """Challenge readable by its owner and its members."""
    challenge = await get_challenge_or_404(db, challenge_id)
    if challenge.user_id != user.id and not await is_member(db, challenge_id, user.id):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "You are not part of this challenge")
    return challenge


async def get_owned_challenge(db: AsyncSession, challenge_id: int, user: Profile) -> Challenge:
    challenge = await get_challenge_or_404(db, challenge_id)
    if challenge.user_id != user.id:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Only the challenge owner can do this")
    return challenge


async def get_tasks(db: AsyncSession, challenge_id: int) -> List[Task]:
    result = await db.execute(
        select(Task)
        .where(Task.challenge_id == challenge_id)
        .order_by(Task.position, Task.id)
    )
    return list(result.scalars().all())


async def create_challenge(db: AsyncSession, user: Profile, data: ChallengeCreate) -> Tuple[Challenge, List[Task]]:
    challenge = Challenge(
        user_id=user.id,
        name=data.name,
        start_date=data.start_date,
        duration_days=data.duration_days,
        invite_token=await new_invite_token(db),
    )
    db.add(challenge)
    await db.flush()

    task_data = data.tasks if data.tasks is not None else DEFAULT_TASKS
    for task_in in task_data:
        task = Task(challenge_id=challenge.id, **task_in.model_dump())
        if task.type == "checkbox":
            task.target_value = 1
        db.add(task)

    await db.commit()
    await db.refresh(challenge)
    logger.info("Challenge %s created by %s with %d tasks", challenge.id, user.id, len(task_data))
    return challenge, await get_tasks(db, challenge.id)


async def list_user_challenges(db: AsyncSession, user: Profile) -> List[Challenge]:
    """Owned challenges (newest first) followed by joined ones."""
    owned = await db.execute(
        select(Challenge)
        .where(Challenge.user_id == user.id)
        .order_by(Challenge.created_at.desc(), Challenge.id.desc())
    )
    joined = await db.execute(
        select(Challenge)
        .join(ChallengeMember, ChallengeMember.challenge_id == Challenge.id)
        .where(ChallengeMember.user_id == user.id)
        .order_by(ChallengeMember.joined_at.desc())
    )
    return list(owned.scalars().all()) + list(joined.scalars().all())


async def update_challenge(db: AsyncSession, challenge: Challenge, data: ChallengeUpdate) -> Challenge:
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(challenge, field, value)
    db.add(challenge)
    await db.commit()
    await db.refresh(challenge)
    return challenge


async def delete_challenge(db: AsyncSession, challenge: Challenge) -> None:
    task_ids = select(Task.id).where(Task.challenge_id == challenge.id)
    entry_ids = select(DailyEntry.id).where(DailyEntry.challenge_id == challenge.id)

    await db.execute(delete(TaskCompletion).where(TaskCompletion.daily_entry_id.in_(entry_ids)))
    await db.execute(delete(FitnessTaskMapping).where(FitnessTaskMapping.task_id.in_(task_ids)))
    await db.execute(delete(DailyEntry).where(DailyEntry.challenge_id == challenge.id))
    await db.execute(delete(Task).where(Task.challenge_id == challenge.id))
    await db.execute(delete(ChallengeMember).where(ChallengeMember.challenge_id == challenge.id))
    await db.delete(challenge)
    await db.commit()
    logger.info("Challenge %s deleted", challenge.id)


async def regenerate_invite_token(db: AsyncSession, challenge: Challenge) -> Challenge:
    # One active token per challenge: the old one stops working immediately
    challenge.invite_token = await new_invite_token(db)
    db.add(challenge)
    await db.commit()
    await db.refresh(challenge)
    return challenge


async def get_challenge_by_token(db: AsyncSession, token: str) -> Challenge:
    result = await db.execute(select(Challenge).where(Challenge.invite_token == token))
    challenge = result.scalar_one_or_none()
    if not challenge:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Invalid invite link")
    return challenge


async def count_members(db: AsyncSession, challenge_id: int) -> int:
    result = await db.execute(
        select(func.count(ChallengeMember.id)).where(ChallengeMember.challenge_id == challenge_id)
    )
    return result.scalar_one()


async def join_challenge(db: AsyncSession, user: Profile, token: str) -> Challenge:
    challenge = await get_challenge_by_token(db, token)

    if challenge.user_id == user.id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "You are the owner of this challenge")
    if await is_member(db, challenge.id, user.id):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "You have already joined this challenge")

    challenge_id, user_id = challenge.id, user.id
    db.add(ChallengeMember(challenge_id=challenge_id, user_id=user_id))
    try:
        await db.commit()
    except IntegrityError:
        # a concurrent join got the membership row in first
        await db.rollback()
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "You have already joined this challenge")
    logger.info("User %s joined challenge %s", user_id, challenge_id)
    return challenge


async def get_profile(db: AsyncSession, user_id: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()


async def get_member_progress(
    db: AsyncSession, challenge: Challenge, now: Optional[datetime] = None
) -> List[MemberProgress]:
    """Leaderboard of the owner and every member, best first.

    Each streak is judged against the participant's own local date, so a member
    a day ahead of the viewer is not shown a broken streak.
    """
    members = await db.execute(
        select(ChallengeMember, Profile)
        .join(Profile, Profile.id == ChallengeMember.user_id)
        .where(ChallengeMember.challenge_id == challenge.id)
    )
    owner = await get_profile(db, challenge.user_id)

    participants = [(challenge.user_id, owner, True, challenge.created_at)]
    participants += [(m.user_id, p, False, m.joined_at) for m, p in members.all()]

    # one query for every participant's completed days
    completed = await db.execute(
        select(DailyEntry.user_id, DailyEntry.date)
        .where(DailyEntry.challenge_id == challenge.id)
        .where(DailyEntry.is_complete.is_(True))
        .where(DailyEntry.user_id.in_([p[0] for p in participants]))
    )
    dates_by_user = {}
    for user_id, day in completed.all():
        dates_by_user.setdefault(user_id, []).append(day)

    progress = []
    for user_id, profile, is_owner, joined_at in participants:
        dates = dates_by_user.get(user_id, [])
        progress.append(
            MemberProgress(
                user_id=user_id,
                display_name=(profile.display_name if profile else None) or "Anonymous",
                is_owner=is_owner,
                completed_days=len(set(dates)),
                current_streak=calculate_streak(
                    dates, today=local_today(profile.timezone if profile else None, now)
                ).current,
                joined_at=joined_at,
            )
        )
    progress.sort(key=lambda m: (m.completed_days, m.current_streak), reverse=True)
    return progress


async def get_owned_task(db: AsyncSession, task_id: int, user: Profile) -> Task:
    result = await db.execute(select(Task).where(Task.id == task_id))
    task = result.scalar_one_or_none()
    if not task:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Task not found")
    await get_owned_challenge(db, task.challenge_id, user)
    return task


async def create_task(db: AsyncSession, challenge: Challenge, data: TaskCreate) -> Task:
    task = Task(challenge_id=challenge.id, **data.model_dump())
    if task.type == "checkbox":
        task.target_value = 1
    db.add(task)
    await db.commit()
    await db.refresh(task)
    return task


async def update_task(db: AsyncSession, task: Task, data: TaskUpdate) -> Task:
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field != "unit":
            continue
        setattr(task, field, value)
    if task.type == "checkbox":
        task.target_value = 1
    db.add(task)
    await db.commit()
    await db.refresh(task)
    return task


async def delete_task(db: AsyncSession, task: Task) -> None:
    await db.execute(delete(TaskCompletion).where(TaskCompletion.task_id == task.id))
    await db.execute(delete(FitnessTaskMapping).where(FitnessTaskMapping.task_id == task.id))
    await db.delete(task)
    await db.commit()


async def reorder_tasks(db: AsyncSession, challenge: Challenge, order: Sequence[TaskOrderItem]) -> List[Task]:
    tasks = {t.id: t for t in await get_tasks(db, challenge.id)}
    unknown = [item.id for item in order if item.id not in tasks]
    if unknown:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Tasks not in this challenge: {unknown}")
    for item in order:
        tasks[item.id].position = item.position
    await db.commit()
    return await get_tasks(db, challenge.id)
