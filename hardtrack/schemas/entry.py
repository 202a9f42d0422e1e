from pydantic import BaseModel, Field
from datetime import date
from typing import Optional, List

class TaskCompletionIn(BaseModel):
    task_id: int
    value: float = Field(0, ge=0)
    is_completed: bool = False

class DailyEntrySave(BaseModel):
    note: Optional[str] = Field(None, max_length=5000)
    image_url: Optional[str] = None
    task_completions: List[TaskCompletionIn] = []

class TaskCompletionResponse(BaseModel):
    task_id: int
    value: float
    is_completed: bool

    model_config = {"from_attributes": True}

class DailyEntryResponse(BaseModel):
    id: Optional[int] = None  # None → nothing saved for this date yet
    challenge_id: int
    user_id: str
    date: date
    note: Optional[str] = None
    image_url: Optional[str] = None
    is_complete: bool = False
    task_completions: List[TaskCompletionResponse] = []

    model_config = {"from_attributes": True}
