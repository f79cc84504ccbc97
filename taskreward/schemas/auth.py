from pydantic import BaseModel, EmailStr, Field

from ..models.user import UserRole


class SignupIn(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str | None = None
    role: UserRole = UserRole.PARENT


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
