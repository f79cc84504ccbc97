from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from . import enum_type, utcnow

if TYPE_CHECKING:
    from .user import User


class UserTaskStatus(StrEnum):
    ASSIGNED = "assigned"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


ACTIVE_TASK_STATUSES = (UserTaskStatus.ASSIGNED, UserTaskStatus.SUBMITTED)

_ACTIVE_PREDICATE = text("status IN ('assigned', 'submitted')")


class Task(Base):
    __table_args__ = (CheckConstraint("points > 0", name="ck_task_points_positive"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_by_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id", ondelete="RESTRICT"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    created_by: Mapped["User"] = relationship(foreign_keys=[created_by_id])
    assignments: Mapped[list["UserTask"]] = relationship(back_populates="task")


class UserTask(Base):
    """One assignment of a task definition to one child."""

    __table_args__ = (
        # at most one open assignment per (child, task definition)
        Index(
            "uq_usertask_active",
            "child_id",
            "task_id",
            unique=True,
            sqlite_where=_ACTIVE_PREDICATE,
            postgresql_where=_ACTIVE_PREDICATE,
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    task_id: Mapped[str] = mapped_column(String(36), ForeignKey("task.id", ondelete="RESTRICT"), index=True)
    child_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id", ondelete="CASCADE"), index=True)
    assigned_by_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id", ondelete="SET NULL"))
    status: Mapped[UserTaskStatus] = mapped_column(
        enum_type(UserTaskStatus, "user_task_status"),
        default=UserTaskStatus.ASSIGNED,
        nullable=False,
        index=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    verified_by_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id", ondelete="SET NULL"))
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    task: Mapped["Task"] = relationship(back_populates="assignments", lazy="joined", innerjoin=True)
    child: Mapped["User"] = relationship(foreign_keys=[child_id])
    assigned_by: Mapped["User | None"] = relationship(foreign_keys=[assigned_by_id])
    verified_by: Mapped["User | None"] = relationship(foreign_keys=[verified_by_id])

    @property
    def task_name(self) -> str:
        return self.task.name

    @property
    def points(self) -> int:
        return self.task.points
