from sqlalchemy import exists, select, update
from sqlalchemy.orm import Session

from ..models import utcnow
from ..models.points import TransactionType
from ..models.relationship import UserRelationship
from ..models.reward import Reward, UserReward, UserRewardStatus
from ..models.user import User
from .base import Decision, Page, WorkflowService, paginate, parse_decision
from .errors import (
    ForbiddenError,
    InsufficientPointsError,
    InvalidStateError,
    NotFoundError,
    NotParentRoleError,
)
from .ledger import append_entry, balance, lock_child
from .relationships import is_parent_of


def _get_reward(db: Session, reward_id: str) -> Reward:
    reward = db.get(Reward, reward_id)
    if reward is None:
        raise NotFoundError("reward not found")
    return reward


def _get_claim(db: Session, claim_id: str) -> UserReward:
    claim = db.get(UserReward, claim_id)
    if claim is None:
        raise NotFoundError("claim not found")
    return claim


class RewardService(WorkflowService):
    """Reward definitions and the pending -> approved/rejected claim workflow.

    A claim snapshots the reward's cost into ``points_deducted``. Nothing is
    debited until a parent approves, and approval re-reads the ledger balance
    inside its own transaction, so two approvals cannot spend the same points.
    """

    def create_definition(self, *, parent_id: str, name: str, points: int, description: str | None = None) -> Reward:
        with self._atomic("create reward") as db:
            parent = db.get(User, parent_id)
            if parent is None:
                raise NotFoundError("user not found")
            if not parent.is_parent:
                raise NotParentRoleError()
            if points <= 0:
                raise InvalidStateError("points must be positive")
            reward = Reward(name=name, points=points, description=description, created_by_id=parent_id)
            db.add(reward)
            db.flush()
            self.logger.info(f"Reward {reward.id} '{name}' ({points} pts) created by {parent_id}")
            return reward

    def update_definition(
        self,
        *,
        reward_id: str,
        parent_id: str,
        name: str | None = None,
        points: int | None = None,
        description: str | None = None,
        is_active: bool | None = None,
    ) -> Reward:
        # pending claims keep the cost they were made at
        with self._atomic("update reward") as db:
            reward = _get_reward(db, reward_id)
            if reward.created_by_id != parent_id:
                raise ForbiddenError("only the creator can edit this reward")
            if points is not None and points <= 0:
                raise InvalidStateError("points must be positive")

            if name is not None:
                reward.name = name
            if points is not None:
                reward.points = points
            if description is not None:
                reward.description = description
            if is_active is not None:
                reward.is_active = is_active
            db.flush()
            db.refresh(reward)
            return reward

    def delete_definition(self, *, reward_id: str, parent_id: str) -> bool:
        """Remove the reward, or only deactivate it when claims reference it. Returns True if removed."""
        with self._atomic("delete reward") as db:
            reward = _get_reward(db, reward_id)
            if reward.created_by_id != parent_id:
                raise ForbiddenError("only the creator can delete this reward")
            if db.execute(select(exists().where(UserReward.reward_id == reward_id))).scalar():
                reward.is_active = False
                self.logger.info(f"Reward {reward_id} has claims; deactivated by {parent_id}")
                return False
            db.delete(reward)
            self.logger.info(f"Reward {reward_id} deleted by {parent_id}")
            return True

    def claim(self, *, child_id: str, reward_id: str) -> str:
        with self._atomic("claim reward") as db:
            reward = db.get(Reward, reward_id)
            if reward is None or not reward.is_active:
                raise NotFoundError("reward not found")
            child = lock_child(db, child_id)
            if child is None or not child.is_child:
                raise NotFoundError("child not found")
            if not is_parent_of(db, reward.created_by_id, child_id):
                raise ForbiddenError("reward is not offered to this child")

            available = balance(db, child_id)
            if available < reward.points:
                raise InsufficientPointsError(f"reward costs {reward.points}, balance is {available}")

            claim = UserReward(reward_id=reward_id, child_id=child_id, points_deducted=reward.points)
            db.add(claim)
            db.flush()
            self.logger.info(f"Child {child_id} claimed reward {reward_id} for {reward.points} pts as {claim.id}")
            return claim.id

    def review(self, *, claim_id: str, parent_id: str, decision: Decision | str) -> UserReward:
        with self._atomic("review claim") as db:
            claim = _get_claim(db, claim_id)
            decision = parse_decision(decision)
            if not is_parent_of(db, parent_id, claim.child_id):
                raise ForbiddenError("not a parent of this child")
            if claim.status != UserRewardStatus.PENDING:
                raise InvalidStateError(f"claim is {claim.status}, not pending")

            new_status = UserRewardStatus(decision.value)
            if new_status == UserRewardStatus.APPROVED:
                lock_child(db, claim.child_id)
            result = db.execute(
                update(UserReward)
                .where(UserReward.id == claim_id, UserReward.status == UserRewardStatus.PENDING)
                .values(status=new_status, reviewed_by_id=parent_id, reviewed_at=utcnow(), updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidStateError("claim is no longer pending")

            if new_status == UserRewardStatus.APPROVED:
                # read after the status write so a concurrent approval for the same child has to wait
                available = balance(db, claim.child_id)
                if available < claim.points_deducted:
                    raise InsufficientPointsError(
                        f"claim costs {claim.points_deducted}, balance is {available}"
                    )
                append_entry(
                    db,
                    child_id=claim.child_id,
                    delta=-claim.points_deducted,
                    transaction_type=TransactionType.REWARD_REDEMPTION,
                    acting_user_id=parent_id,
                    notes=f"Reward '{claim.reward.name}' redeemed",
                    related_user_reward_id=claim_id,
                )
            db.refresh(claim)
            self.logger.info(f"Claim {claim_id} {claim.status} by parent {parent_id}")
            return claim

    # listings

    def get_claim(self, claim_id: str) -> UserReward:
        with self._atomic("get claim") as db:
            return _get_claim(db, claim_id)

    def list_definitions_for_parent(
        self, parent_id: str, *, page: int | None = None, page_size: int | None = None
    ) -> Page:
        stmt = select(Reward).where(Reward.created_by_id == parent_id).order_by(Reward.created_at.desc())
        with self._atomic("list reward definitions") as db:
            return paginate(db, stmt, page=page, page_size=page_size)

    def list_available_rewards(
        self, child_id: str, *, page: int | None = None, page_size: int | None = None
    ) -> Page:
        """Active rewards created by any of the child's parents."""
        parents = select(UserRelationship.parent_id).where(UserRelationship.child_id == child_id)
        stmt = (
            select(Reward)
            .where(Reward.is_active.is_(True), Reward.created_by_id.in_(parents))
            .order_by(Reward.points, Reward.name)
        )
        with self._atomic("list available rewards") as db:
            return paginate(db, stmt, page=page, page_size=page_size)

    def list_claims_for_child(
        self,
        child_id: str,
        *,
        status: UserRewardStatus | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page:
        stmt = select(UserReward).where(UserReward.child_id == child_id)
        if status is not None:
            stmt = stmt.where(UserReward.status == status)
        stmt = stmt.order_by(UserReward.claimed_at.desc())
        with self._atomic("list child claims") as db:
            return paginate(db, stmt, page=page, page_size=page_size)

    def list_pending_claims_for_parent(
        self, parent_id: str, *, page: int | None = None, page_size: int | None = None
    ) -> Page:
        children = select(UserRelationship.child_id).where(UserRelationship.parent_id == parent_id)
        stmt = (
            select(UserReward)
            .where(UserReward.child_id.in_(children), UserReward.status == UserRewardStatus.PENDING)
            .order_by(UserReward.claimed_at)
        )
        with self._atomic("list pending claims") as db:
            return paginate(db, stmt, page=page, page_size=page_size)
