from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional, List

class TaskStat(BaseModel):
    task_id: int
    label: str
    total_completions: int
    average_value: float
    completion_rate: int  # percent of elapsed days

class ProgressStats(BaseModel):
    total_days: int
    elapsed_days: int
    completed_days: int
    missed_days: int
    current_streak: int
    longest_streak: int
    completion_percentage: int
    days_remaining: int
    task_stats: List[TaskStat]

class CalendarDay(BaseModel):
    date: date
    day_number: int
    is_completed: bool
    is_missed: bool
    is_future: bool
    is_today: bool

class MemberProgress(BaseModel):
    user_id: str
    display_name: str
    is_owner: bool
    completed_days: int
    current_streak: int
    joined_at: Optional[datetime] = None

class DashboardChallenge(BaseModel):
    challenge_id: int
    name: str
    is_owner: bool
    start_date: date
    day_number: int
    total_days: int
    today_status: str  # "complete", "in_progress", "not_started", "not_active"
    current_streak: int
    completion_percentage: int
    days_remaining: int

class DashboardResponse(BaseModel):
    today: date
    challenges: List[DashboardChallenge]
