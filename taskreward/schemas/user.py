from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from ..models.user import UserRole
from .common import ORMModel


class UserOut(ORMModel):
    id: str
    username: str
    email: EmailStr
    full_name: str | None = None
    role: str
    is_active: bool
    created_at: datetime


class ChildCreate(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str | None = None


class ChildLink(BaseModel):
    # username or email of an existing child account
    identifier: str = Field(min_length=1)


class RelationshipOut(ORMModel):
    id: str
    parent_id: str
    child_id: str
    created_at: datetime


class ProfileUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=100)
    email: EmailStr | None = None
    full_name: str | None = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)


class AdminUserUpdate(ProfileUpdate):
    role: UserRole | None = None
    is_active: bool | None = None
