from pydantic import BaseModel, Field
from typing import Literal, Optional, List

TaskType = Literal["checkbox", "number"]

class TaskCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=200)
    type: TaskType
    target_value: float = Field(1, ge=0)
    unit: Optional[str] = Field(None, max_length=50)
    is_required: bool = True
    position: int = Field(0, ge=0)

class TaskUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[TaskType] = None
    target_value: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=50)
    is_required: Optional[bool] = None
    position: Optional[int] = Field(None, ge=0)

class TaskOrderItem(BaseModel):
    id: int
    position: int = Field(..., ge=0)

class TaskOrderUpdate(BaseModel):
    tasks: List[TaskOrderItem]

class TaskResponse(BaseModel):
    id: int
    challenge_id: int
    label: str
    type: TaskType
    target_value: float
    unit: Optional[str]
    is_required: bool
    position: int

    model_config = {"from_attributes": True}

# The classic starter set offered by the onboarding wizard
DEFAULT_TASKS = [
    TaskCreate(label="Read 10 pages", type="number", target_value=10, unit="pages", is_required=True, position=0),
    TaskCreate(label="Walk 5,000 steps", type="number", target_value=5000, unit="steps", is_required=True, position=1),
    TaskCreate(label="Eat 2 healthy meals", type="number", target_value=2, unit="meals", is_required=True, position=2),
    TaskCreate(label="Drink 2.5L water", type="number", target_value=2.5, unit="L", is_required=True, position=3),
]
