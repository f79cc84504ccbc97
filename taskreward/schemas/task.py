from datetime import datetime

from pydantic import BaseModel, Field

from ..services.base import Decision
from .common import ORMModel


class TaskCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    points: int = Field(gt=0)
    description: str | None = None


class TaskUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    points: int | None = Field(default=None, gt=0)
    description: str | None = None


class TaskOut(ORMModel):
    id: str
    name: str
    points: int
    description: str | None = None
    created_by_id: str
    created_at: datetime


class AssignIn(BaseModel):
    task_id: str
    child_id: str


class AssignOut(BaseModel):
    user_task_id: str


class DecisionIn(BaseModel):
    decision: Decision


class UserTaskOut(ORMModel):
    id: str
    task_id: str
    task_name: str
    points: int
    child_id: str
    assigned_by_id: str | None
    status: str
    assigned_at: datetime
    submitted_at: datetime | None
    verified_by_id: str | None
    verified_at: datetime | None
    completed_at: datetime | None
