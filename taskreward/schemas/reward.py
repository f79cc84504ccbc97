from datetime import datetime

from pydantic import BaseModel, Field

from .common import ORMModel


class RewardCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    points: int = Field(gt=0)
    description: str | None = None


class RewardUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    points: int | None = Field(default=None, gt=0)
    description: str | None = None
    is_active: bool | None = None


class RewardOut(ORMModel):
    id: str
    name: str
    points: int
    description: str | None = None
    created_by_id: str
    is_active: bool


class ClaimIn(BaseModel):
    reward_id: str


class ClaimCreatedOut(BaseModel):
    claim_id: str


class UserRewardOut(ORMModel):
    id: str
    reward_id: str
    reward_name: str
    child_id: str
    points_deducted: int
    status: str
    claimed_at: datetime
    reviewed_by_id: str | None
    reviewed_at: datetime | None
