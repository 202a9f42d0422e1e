from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List

from hardtrack.schemas.task import TaskCreate, TaskResponse

class ChallengeCreate(BaseModel):
    name: str = Field("My 75 Hard Challenge", min_length=1, max_length=100)
    start_date: date
    duration_days: int = Field(75, ge=1, le=365)
    tasks: Optional[List[TaskCreate]] = None  # None → default task set

class ChallengeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    start_date: Optional[date] = None
    duration_days: Optional[int] = Field(None, ge=1, le=365)

class ChallengeResponse(BaseModel):
    id: int
    user_id: str
    name: str
    start_date: date
    duration_days: int
    invite_token: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class ChallengeWithTasksResponse(ChallengeResponse):
    tasks: List[TaskResponse]
    is_owner: bool = False

class JoinPreviewResponse(BaseModel):
    challenge_id: int
    name: str
    owner_name: str
    start_date: date
    duration_days: int
    member_count: int

class JoinResponse(BaseModel):
    challenge_id: int
    message: str
