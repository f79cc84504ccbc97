from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import sessionmaker

from ..db.session import SessionLocal
from ..models.user import User
from ..services.errors import NotFoundError
from ..services.invitation_service import InvitationService
from ..services.ledger import PointService
from ..services.reward_service import RewardService
from ..services.security import decode_access_token
from ..services.task_service import TaskService
from ..services.user_service import UserService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def get_session_factory() -> sessionmaker:
    """Unit-of-work factory handed to every service. Tests override this dependency."""
    return SessionLocal


def get_user_service(factory: sessionmaker = Depends(get_session_factory)) -> UserService:
    return UserService(factory)


def get_task_service(factory: sessionmaker = Depends(get_session_factory)) -> TaskService:
    return TaskService(factory)


def get_reward_service(factory: sessionmaker = Depends(get_session_factory)) -> RewardService:
    return RewardService(factory)


def get_point_service(factory: sessionmaker = Depends(get_session_factory)) -> PointService:
    return PointService(factory)


def get_invitation_service(factory: sessionmaker = Depends(get_session_factory)) -> InvitationService:
    return InvitationService(factory)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    users: UserService = Depends(get_user_service),
) -> User:
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user_id: Optional[str] = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    try:
        user = users.get_user(user_id)
    except NotFoundError:
        raise HTTPException(status_code=401, detail="Inactive or missing user")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Inactive or missing user")
    return user


def require_parent(current: User = Depends(get_current_user)) -> User:
    if not current.is_parent:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Parent account required")
    return current


def require_child(current: User = Depends(get_current_user)) -> User:
    if not current.is_child:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Child account required")
    return current


def require_admin(current: User = Depends(get_current_user)) -> User:
    if not current.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin account required")
    return current
