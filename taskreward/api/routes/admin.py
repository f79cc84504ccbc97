import logging

from fastapi import APIRouter, Depends, Query, Response, status

from ...models.user import User, UserRole
from ...schemas.common import PageOut, to_page
from ...schemas.user import AdminUserUpdate, UserOut
from ...services.user_service import UserService
from ..deps import get_user_service, require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users", response_model=PageOut[UserOut])
def list_users(
    role: UserRole | None = None,
    is_active: bool | None = None,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    return to_page(users.list_users(role=role, is_active=is_active, page=page, page_size=page_size), UserOut)


@router.get("/users/{user_id}", response_model=UserOut)
def get_user(
    user_id: str,
    current: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    return users.get_user(user_id)


@router.patch("/users/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    payload: AdminUserUpdate,
    current: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    logger.info(f"Admin {current.id} updating user {user_id}")
    return users.update_user(
        user_id,
        admin_id=current.id,
        username=payload.username,
        email=payload.email,
        full_name=payload.full_name,
        role=payload.role,
        is_active=payload.is_active,
    )


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_user(
    user_id: str,
    current: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    users.deactivate_user(user_id, admin_id=current.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
