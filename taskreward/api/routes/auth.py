import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from ...models.user import User
from ...schemas.auth import SignupIn, TokenOut
from ...schemas.user import UserOut
from ...services.security import create_access_token
from ...services.user_service import UserService
from ..deps import get_current_user, get_user_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupIn, users: UserService = Depends(get_user_service)):
    logger.info(f"Signup attempt: username={payload.username}, role={payload.role}")
    return users.register(
        username=payload.username,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        role=payload.role,
    )


@router.post("/token", response_model=TokenOut)
def token(form: OAuth2PasswordRequestForm = Depends(), users: UserService = Depends(get_user_service)):
    # form.username accepts either the username or the email
    user = users.authenticate(form.username, form.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect credentials")
    return TokenOut(access_token=create_access_token(user.id, str(user.role)))


@router.get("/me", response_model=UserOut)
def me(current: User = Depends(get_current_user)):
    return current
