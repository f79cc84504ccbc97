from fastapi import APIRouter, Depends

from ...models.user import User
from ...schemas.common import MessageOut
from ...schemas.user import PasswordChange, ProfileUpdate, UserOut
from ...services.user_service import UserService
from ..deps import get_current_user, get_user_service

router = APIRouter()


@router.get("/me", response_model=UserOut)
def get_profile(current: User = Depends(get_current_user)):
    return current


@router.patch("/me", response_model=UserOut)
def update_profile(
    payload: ProfileUpdate,
    current: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return users.update_profile(
        current.id, username=payload.username, email=payload.email, full_name=payload.full_name
    )


@router.patch("/me/password", response_model=MessageOut)
def change_password(
    payload: PasswordChange,
    current: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    users.change_password(
        current.id, current_password=payload.current_password, new_password=payload.new_password
    )
    return MessageOut(message="Password updated")
