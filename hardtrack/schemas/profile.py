from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from hardtrack.utils.dates import is_valid_timezone

class ProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(None, max_length=100)
    timezone: Optional[str] = None
    reminder_enabled: Optional[bool] = None
    reminder_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value):
        if value is not None and not is_valid_timezone(value):
            raise ValueError("Unknown timezone")
        return value

class ProfileResponse(BaseModel):
    id: str
    email: Optional[str]
    display_name: Optional[str]
    timezone: Optional[str]
    reminder_enabled: bool
    reminder_time: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class TimezoneOption(BaseModel):
    value: str
    label: str
