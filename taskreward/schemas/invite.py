from datetime import datetime

from pydantic import BaseModel, Field

from .common import ORMModel


class InviteIssued(BaseModel):
    code: str


class InviteOut(ORMModel):
    id: str
    code: str
    child_id: str
    status: str
    expires_at: datetime
    used_by_id: str | None
    used_at: datetime | None


class RedeemIn(BaseModel):
    code: str = Field(min_length=1, max_length=32)


class InviteCreate(BaseModel):
    child_id: str
