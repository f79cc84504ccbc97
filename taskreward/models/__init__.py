from datetime import datetime, timezone
from enum import StrEnum

from sqlalchemy import Enum as SAEnum


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes; everything is stored in UTC
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def enum_type(enum_cls: type[StrEnum], name: str) -> SAEnum:
    """Persist the enum *values* ("assigned") rather than the member names."""
    return SAEnum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


from .user import User, UserRole
from .relationship import UserRelationship
from .task import Task, UserTask, UserTaskStatus
from .reward import Reward, UserReward, UserRewardStatus
from .points import PointTransaction, TransactionType
from .invite import InvitationCode, InvitationStatus
