from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from hardtrack.database import get_db
from hardtrack.core.auth import get_current_user
from hardtrack.schemas.challenge import (
    ChallengeCreate, ChallengeUpdate, ChallengeResponse, ChallengeWithTasksResponse,
)
from hardtrack.schemas.task import DEFAULT_TASKS, TaskCreate, TaskOrderUpdate, TaskResponse
from hardtrack.services import challenges as service

router = APIRouter(prefix="/challenges", tags=["challenges"])


@router.get("/default-tasks", response_model=List[TaskCreate])
async def get_default_tasks():
    return DEFAULT_TASKS


@router.post("", response_model=ChallengeWithTasksResponse, status_code=status.HTTP_201_CREATED)
async def create_challenge(
    challenge_in: ChallengeCreate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge, tasks = await service.create_challenge(db, current_user, challenge_in)
    return service.with_tasks(challenge, tasks, current_user)


@router.get("", response_model=List[ChallengeWithTasksResponse])
async def list_challenges(
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenges = await service.list_user_challenges(db, current_user)
    return [
        service.with_tasks(c, await service.get_tasks(db, c.id), current_user)
        for c in challenges
    ]


@router.get("/{challenge_id}", response_model=ChallengeWithTasksResponse)
async def get_challenge(
    challenge_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await service.get_visible_challenge(db, challenge_id, current_user)
    return service.with_tasks(challenge, await service.get_tasks(db, challenge.id), current_user)


@router.patch("/{challenge_id}", response_model=ChallengeResponse)
async def update_challenge(
    challenge_id: int,
    challenge_in: ChallengeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await service.get_owned_challenge(db, challenge_id, current_user)
    return await service.update_challenge(db, challenge, challenge_in)


@router.delete("/{challenge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_challenge(
    challenge_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await service.get_owned_challenge(db, challenge_id, current_user)
    await service.delete_challenge(db, challenge)


@router.post("/{challenge_id}/invite-token", response_model=ChallengeResponse)
async def regenerate_invite_token(
    challenge_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await service.get_owned_challenge(db, challenge_id, current_user)
    return await service.regenerate_invite_token(db, challenge)


@router.post("/{challenge_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    challenge_id: int,
    task_in: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await service.get_owned_challenge(db, challenge_id, current_user)
    return await service.create_task(db, challenge, task_in)


@router.put("/{challenge_id}/tasks/order", response_model=List[TaskResponse])
async def reorder_tasks(
    challenge_id: int,
    order_in: TaskOrderUpdate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    challenge = await service.get_owned_challenge(db, challenge_id, current_user)
    return await service.reorder_tasks(db, challenge, order_in.tasks)
