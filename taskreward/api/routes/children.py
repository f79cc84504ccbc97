from fastapi import APIRouter, Depends, Query, status

from ...models.reward import UserRewardStatus
from ...models.task import UserTaskStatus
from ...models.user import User
from ...schemas.common import PageOut, to_page
from ...schemas.points import BalanceOut, TransactionOut
from ...schemas.reward import ClaimCreatedOut, ClaimIn, RewardOut, UserRewardOut
from ...schemas.task import UserTaskOut
from ...schemas.user import UserOut
from ...services.ledger import PointService
from ...services.reward_service import RewardService
from ...services.task_service import TaskService
from ...services.user_service import UserService
from ..deps import get_point_service, get_reward_service, get_task_service, get_user_service, require_child

router = APIRouter()


@router.get("/me/parents", response_model=list[UserOut])
def my_parents(current: User = Depends(require_child), users: UserService = Depends(get_user_service)):
    return users.list_parents(current.id)


@router.get("/me/tasks", response_model=PageOut[UserTaskOut])
def my_tasks(
    status_filter: UserTaskStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current: User = Depends(require_child),
    tasks: TaskService = Depends(get_task_service),
):
    result = tasks.list_tasks_for_child(current.id, status=status_filter, page=page, page_size=page_size)
    return to_page(result, UserTaskOut)


@router.post("/me/tasks/{user_task_id}/submit", response_model=UserTaskOut)
def submit_task(
    user_task_id: str,
    current: User = Depends(require_child),
    tasks: TaskService = Depends(get_task_service),
):
    return tasks.submit(user_task_id=user_task_id, child_id=current.id)


@router.get("/me/rewards", response_model=PageOut[RewardOut])
def available_rewards(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current: User = Depends(require_child),
    rewards: RewardService = Depends(get_reward_service),
):
    return to_page(rewards.list_available_rewards(current.id, page=page, page_size=page_size), RewardOut)


@router.post("/me/claims", response_model=ClaimCreatedOut, status_code=status.HTTP_201_CREATED)
def claim_reward(
    payload: ClaimIn,
    current: User = Depends(require_child),
    rewards: RewardService = Depends(get_reward_service),
):
    return ClaimCreatedOut(claim_id=rewards.claim(child_id=current.id, reward_id=payload.reward_id))


@router.get("/me/claims", response_model=PageOut[UserRewardOut])
def my_claims(
    status_filter: UserRewardStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current: User = Depends(require_child),
    rewards: RewardService = Depends(get_reward_service),
):
    result = rewards.list_claims_for_child(current.id, status=status_filter, page=page, page_size=page_size)
    return to_page(result, UserRewardOut)


@router.get("/me/balance", response_model=BalanceOut)
def my_balance(current: User = Depends(require_child), points: PointService = Depends(get_point_service)):
    return BalanceOut(child_id=current.id, balance=points.balance(current.id))


@router.get("/me/transactions", response_model=PageOut[TransactionOut])
def my_transactions(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current: User = Depends(require_child),
    points: PointService = Depends(get_point_service),
):
    return to_page(points.history(current.id, page=page, page_size=page_size), TransactionOut)
