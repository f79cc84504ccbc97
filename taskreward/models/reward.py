from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from . import enum_type, utcnow

if TYPE_CHECKING:
    from .user import User


class Reward(Base):
    __table_args__ = (CheckConstraint("points > 0", name="ck_reward_points_positive"),)

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_by_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="RESTRICT"),
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    created_by: Mapped["User"] = relationship(foreign_keys=[created_by_id])
    claims: Mapped[list["UserReward"]] = relationship(back_populates="reward")


class UserRewardStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UserReward(Base):
    """A child's claim against a reward definition."""

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    reward_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reward.id", ondelete="RESTRICT"),
        index=True,
    )
    child_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="CASCADE"),
        index=True,
    )
    # cost snapshot taken at claim time; later edits to the reward do not touch it
    points_deducted: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[UserRewardStatus] = mapped_column(
        enum_type(UserRewardStatus, "user_reward_status"),
        default=UserRewardStatus.PENDING,
        nullable=False,
        index=True,
    )
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    reviewed_by_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="SET NULL"),
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    reward: Mapped["Reward"] = relationship(back_populates="claims", lazy="joined", innerjoin=True)
    child: Mapped["User"] = relationship(foreign_keys=[child_id])
    reviewed_by: Mapped["User | None"] = relationship(
        foreign_keys=[reviewed_by_id]
    )

    @property
    def reward_name(self) -> str:
        return self.reward.name
