from datetime import datetime

from pydantic import BaseModel, Field

from .common import ORMModel


class BalanceOut(BaseModel):
    child_id: str
    balance: int


class TransactionOut(ORMModel):
    id: str
    child_id: str
    change_amount: int
    transaction_type: str
    related_user_task_id: str | None
    related_user_reward_id: str | None
    created_by_id: str | None
    notes: str | None
    created_at: datetime


class AdjustIn(BaseModel):
    delta: int
    notes: str | None = Field(default=None, max_length=500)


class AdjustOut(BaseModel):
    transaction_id: str
    balance: int
