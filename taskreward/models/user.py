from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from . import enum_type, utcnow

if TYPE_CHECKING:
    from .relationship import UserRelationship


class UserRole(StrEnum):
    PARENT = "parent"
    CHILD = "child"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "user"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(128))
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(enum_type(UserRole, "user_role"), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    child_links: Mapped[list["UserRelationship"]] = relationship(
        back_populates="parent",
        foreign_keys="UserRelationship.parent_id",
        cascade="all,delete-orphan",
    )
    parent_links: Mapped[list["UserRelationship"]] = relationship(
        back_populates="child",
        foreign_keys="UserRelationship.child_id",
        cascade="all,delete-orphan",
    )

    @property
    def is_parent(self) -> bool:
        return self.role == UserRole.PARENT

    @property
    def is_child(self) -> bool:
        return self.role == UserRole.CHILD

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
