from datetime import datetime
from enum import StrEnum
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.base_class import Base
from . import enum_type, utcnow


class TransactionType(StrEnum):
    TASK_COMPLETION = "task_completion"
    REWARD_REDEMPTION = "reward_redemption"
    MANUAL_ADJUSTMENT = "manual_adjustment"


class PointTransaction(Base):
    """Append-only ledger row. A child's balance is the sum of its change_amount values."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    child_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id", ondelete="CASCADE"), index=True)
    change_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        enum_type(TransactionType, "point_transaction_type"), nullable=False
    )
    related_user_task_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("usertask.id", ondelete="SET NULL"), index=True
    )
    related_user_reward_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("userreward.id", ondelete="SET NULL"), index=True
    )
    created_by_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id", ondelete="SET NULL"))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
