from datetime import date
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


GoalStatus = Literal["pending", "in_progress", "done"]
GoalPriority = Literal["low", "medium", "high"]


class GoalCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = ""
    start_date: str  # YYYY-MM-DD
    end_date: str  # YYYY-MM-DD
    status: GoalStatus = "pending"
    priority: GoalPriority = "medium"

    @field_validator("start_date", "end_date")
    @classmethod
    def _calendar_date(cls, value: str) -> str:
        date.fromisoformat(value)
        return value


class GoalUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: Optional[GoalStatus] = None
    priority: Optional[GoalPriority] = None

    @field_validator("title", "start_date", "end_date", "status", "priority")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class GoalInDB(GoalCreate):
    user_id: str
    goal_id: str = Field(default_factory=lambda: str(uuid4()))


class GoalPublic(BaseModel):
    goal_id: str
    title: str
    description: Optional[str] = ""
    start_date: str
    end_date: str
    status: GoalStatus
    priority: GoalPriority
