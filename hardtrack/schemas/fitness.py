from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Literal, Optional, List

FitnessMetric = Literal["distance", "duration", "steps", "calories"]

class FitnessActivityResponse(BaseModel):
    id: int
    provider: str
    provider_activity_id: str
    activity_type: str
    name: Optional[str]
    start_date: datetime
    duration_seconds: Optional[float]
    distance_meters: Optional[float]
    calories_burned: Optional[float]
    steps_count: Optional[int]
    heart_rate_avg: Optional[float]
    heart_rate_max: Optional[float]

    model_config = {"from_attributes": True}

class FitnessMetrics(BaseModel):
    total_distance_meters: float = 0
    total_duration_seconds: float = 0
    total_steps: int = 0
    total_calories: float = 0
    activities: List[FitnessActivityResponse] = []

class TaskSuggestion(BaseModel):
    task_id: int
    value: float
    is_completed: bool

class SuggestionResponse(BaseModel):
    date: date
    strategy: Literal["mapping", "heuristic"]
    metrics: FitnessMetrics
    suggestions: List[TaskSuggestion]

class FitnessMappingCreate(BaseModel):
    activity_type: str = Field(..., min_length=1, max_length=50)
    metric: FitnessMetric
    multiplier: float = Field(1, gt=0)

class FitnessMappingResponse(BaseModel):
    id: int
    task_id: int
    activity_type: str
    metric: FitnessMetric
    multiplier: float

    model_config = {"from_attributes": True}

class ActivityTypeSuggestion(BaseModel):
    value: str
    label: str
    metrics: List[FitnessMetric]

class AuthorizeResponse(BaseModel):
    auth_url: str

class StravaStatusResponse(BaseModel):
    connected: bool
    last_sync: Optional[datetime] = None
    athlete_id: Optional[str] = None

class SyncResult(BaseModel):
    user_id: str
    success: bool
    activities_synced: int
    error: Optional[str] = None

class SyncSummary(BaseModel):
    message: str
    total_users: int
    successful: int
    failed: int
    total_activities_synced: int
    results: List[SyncResult]

class ReminderSummary(BaseModel):
    message: str
    checked: int
    need_reminder: int
    sent: int
    failed: int
