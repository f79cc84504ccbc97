from fastapi import APIRouter, Depends, Query, Response, status

from ...models.task import UserTaskStatus
from ...models.user import User
from ...schemas.common import MessageOut, PageOut, to_page
from ...schemas.points import AdjustIn, AdjustOut, BalanceOut, TransactionOut
from ...schemas.reward import RewardCreate, RewardOut, RewardUpdate, UserRewardOut
from ...schemas.task import AssignIn, AssignOut, DecisionIn, TaskCreate, TaskOut, TaskUpdate, UserTaskOut
from ...schemas.user import ChildCreate, ChildLink, UserOut
from ...services.ledger import PointService
from ...services.reward_service import RewardService
from ...services.task_service import TaskService
from ...services.user_service import UserService
from ..deps import get_point_service, get_reward_service, get_task_service, get_user_service, require_parent

router = APIRouter()


# ------------------------------------------------------------------------
#  Children
# ------------------------------------------------------------------------
@router.get("/children", response_model=list[UserOut])
def list_children(current: User = Depends(require_parent), users: UserService = Depends(get_user_service)):
    return users.list_children(current.id)


@router.post("/children", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_child(
    payload: ChildCreate,
    current: User = Depends(require_parent),
    users: UserService = Depends(get_user_service),
):
    return users.create_child_account(
        parent_id=current.id,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
    )


@router.post("/children/link", response_model=UserOut)
def link_child(
    payload: ChildLink,
    current: User = Depends(require_parent),
    users: UserService = Depends(get_user_service),
):
    return users.add_child(parent_id=current.id, identifier=payload.identifier)


@router.delete("/children/{child_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlink_child(
    child_id: str,
    current: User = Depends(require_parent),
    users: UserService = Depends(get_user_service),
):
    users.remove_child(parent_id=current.id, child_id=child_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/children/{child_id}/balance", response_model=BalanceOut)
def child_balance(
    child_id: str,
    current: User = Depends(require_parent),
    points: PointService = Depends(get_point_service),
):
    return BalanceOut(child_id=child_id, balance=points.balance(child_id, viewer_id=current.id))


@router.get("/children/{child_id}/transactions", response_model=PageOut[TransactionOut])
def child_transactions(
    child_id: str,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current: User = Depends(require_parent),
    points: PointService = Depends(get_point_service),
):
    history = points.history(child_id, viewer_id=current.id, page=page, page_size=page_size)
    return to_page(history, TransactionOut)


@router.post("/children/{child_id}/points", response_model=AdjustOut)
def adjust_points(
    child_id: str,
    payload: AdjustIn,
    current: User = Depends(require_parent),
    points: PointService = Depends(get_point_service),
):
    result = points.adjust(parent_id=current.id, child_id=child_id, delta=payload.delta, notes=payload.notes)
    return AdjustOut(transaction_id=result.transaction_id, balance=result.balance)


# ------------------------------------------------------------------------
#  Task definitions and assignments
# ------------------------------------------------------------------------
@router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    current: User = Depends(require_parent),
    tasks: TaskService = Depends(get_task_service),
):
    return tasks.create_definition(
        parent_id=current.id, name=payload.name, points=payload.points, description=payload.description
    )


@router.get("/tasks", response_model=PageOut[TaskOut])
def list_tasks(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current: User = Depends(require_parent),
    tasks: TaskService = Depends(get_task_service),
):
    return to_page(tasks.list_definitions_for_parent(current.id, page=page, page_size=page_size), TaskOut)


@router.patch("/tasks/{task_id}", response_model=TaskOut)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    current: User = Depends(require_parent),
    tasks: TaskService = Depends(get_task_service),
):
    return tasks.update_definition(task_id=task_id, parent_id=current.id, **payload.model_dump(exclude_unset=True))


@router.delete("/tasks/{task_id}", response_model=MessageOut)
def delete_task(
    task_id: str,
    current: User = Depends(require_parent),
    tasks: TaskService = Depends(get_task_service),
):
    tasks.delete_definition(task_id=task_id, parent_id=current.id)
    return MessageOut(message="Task deleted")


@router.post("/assignments", response_model=AssignOut, status_code=status.HTTP_201_CREATED)
def assign_task(
    payload: AssignIn,
    current: User = Depends(require_parent),
    tasks: TaskService = Depends(get_task_service),
):
    user_task_id = tasks.assign(child_id=payload.child_id, task_id=payload.task_id, parent_id=current.id)
    return AssignOut(user_task_id=user_task_id)


@router.get("/assignments", response_model=PageOut[UserTaskOut])
def list_assignments(
    status_filter: UserTaskStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current: User = Depends(require_parent),
    tasks: TaskService = Depends(get_task_service),
):
    result = tasks.list_tasks_for_parent(current.id, status=status_filter, page=page, page_size=page_size)
    return to_page(result, UserTaskOut)


@router.post("/assignments/{user_task_id}/verify", response_model=UserTaskOut)
def verify_assignment(
    user_task_id: str,
    payload: DecisionIn,
    current: User = Depends(require_parent),
    tasks: TaskService = Depends(get_task_service),
):
    return tasks.verify(user_task_id=user_task_id, parent_id=current.id, decision=payload.decision)


# ------------------------------------------------------------------------
#  Rewards and claims
# ------------------------------------------------------------------------
@router.post("/rewards", response_model=RewardOut, status_code=status.HTTP_201_CREATED)
def create_reward(
    payload: RewardCreate,
    current: User = Depends(require_parent),
    rewards: RewardService = Depends(get_reward_service),
):
    return rewards.create_definition(
        parent_id=current.id, name=payload.name, points=payload.points, description=payload.description
    )


@router.get("/rewards", response_model=PageOut[RewardOut])
def list_rewards(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current: User = Depends(require_parent),
    rewards: RewardService = Depends(get_reward_service),
):
    return to_page(rewards.list_definitions_for_parent(current.id, page=page, page_size=page_size), RewardOut)


@router.patch("/rewards/{reward_id}", response_model=RewardOut)
def update_reward(
    reward_id: str,
    payload: RewardUpdate,
    current: User = Depends(require_parent),
    rewards: RewardService = Depends(get_reward_service),
):
    return rewards.update_definition(
        reward_id=reward_id, parent_id=current.id, **payload.model_dump(exclude_unset=True)
    )


@router.delete("/rewards/{reward_id}", response_model=MessageOut)
def delete_reward(
    reward_id: str,
    current: User = Depends(require_parent),
    rewards: RewardService = Depends(get_reward_service),
):
    removed = rewards.delete_definition(reward_id=reward_id, parent_id=current.id)
    return MessageOut(message="Reward deleted" if removed else "Reward has claims; deactivated")


@router.get("/claims/pending", response_model=PageOut[UserRewardOut])
def pending_claims(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current: User = Depends(require_parent),
    rewards: RewardService = Depends(get_reward_service),
):
    result = rewards.list_pending_claims_for_parent(current.id, page=page, page_size=page_size)
    return to_page(result, UserRewardOut)


@router.post("/claims/{claim_id}/review", response_model=UserRewardOut)
def review_claim(
    claim_id: str,
    payload: DecisionIn,
    current: User = Depends(require_parent),
    rewards: RewardService = Depends(get_reward_service),
):
    return rewards.review(claim_id=claim_id, parent_id=current.id, decision=payload.decision)
