import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models.points import PointTransaction, TransactionType
from ..models.user import User
from .base import Page, WorkflowService, paginate
from .errors import ForbiddenError, InsufficientPointsError, InvalidStateError, NotFoundError
from .relationships import is_parent_of

logger = logging.getLogger(__name__)


def lock_child(db: Session, child_id: str) -> User | None:
    """Load the child row with FOR UPDATE so balance-gated writes for one child serialise."""
    return db.execute(select(User).where(User.id == child_id).with_for_update()).scalar_one_or_none()


def append_entry(
    db: Session,
    *,
    child_id: str,
    delta: int,
    transaction_type: TransactionType,
    acting_user_id: str | None,
    notes: str | None = None,
    related_user_task_id: str | None = None,
    related_user_reward_id: str | None = None,
) -> str:
    entry = PointTransaction(
        child_id=child_id,
        change_amount=delta,
        transaction_type=transaction_type,
        created_by_id=acting_user_id,
        notes=notes,
        related_user_task_id=related_user_task_id,
        related_user_reward_id=related_user_reward_id,
    )
    db.add(entry)
    db.flush()
    logger.info(f"Ledger entry {entry.id}: child={child_id} delta={delta:+d} type={transaction_type}")
    return entry.id


def balance(db: Session, child_id: str) -> int:
    total = db.execute(
        select(func.coalesce(func.sum(PointTransaction.change_amount), 0)).where(
            PointTransaction.child_id == child_id
        )
    ).scalar_one()
    return int(total)


def history(db: Session, child_id: str, *, page: int | None = None, page_size: int | None = None) -> Page:
    stmt = (
        select(PointTransaction)
        .where(PointTransaction.child_id == child_id)
        .order_by(PointTransaction.created_at.desc(), PointTransaction.id.desc())
    )
    return paginate(db, stmt, page=page, page_size=page_size)


@dataclass
class Adjustment:
    transaction_id: str
    balance: int


class PointService(WorkflowService):
    def balance(self, child_id: str, *, viewer_id: str | None = None) -> int:
        with self._atomic("balance") as db:
            _require_child(db, child_id)
            _check_viewer(db, viewer_id, child_id)
            return balance(db, child_id)

    def history(
        self,
        child_id: str,
        *,
        viewer_id: str | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page:
        with self._atomic("point history") as db:
            _require_child(db, child_id)
            _check_viewer(db, viewer_id, child_id)
            return history(db, child_id, page=page, page_size=page_size)

    def adjust(self, *, parent_id: str, child_id: str, delta: int, notes: str | None = None) -> Adjustment:
        """Manual credit or debit by one of the child's parents. Never drives the balance below zero.

        The returned balance is read inside the same transaction as the new entry.
        """
        with self._atomic("adjust points") as db:
            if delta == 0:
                raise InvalidStateError("adjustment must be non-zero")
            if parent_id == child_id:
                raise InvalidStateError("cannot adjust your own points")
            child = lock_child(db, child_id)
            if child is None or not child.is_child:
                raise NotFoundError("child not found")
            if not is_parent_of(db, parent_id, child_id):
                raise ForbiddenError("not a parent of this child")

            entry_id = append_entry(
                db,
                child_id=child_id,
                delta=delta,
                transaction_type=TransactionType.MANUAL_ADJUSTMENT,
                acting_user_id=parent_id,
                notes=notes,
            )
            # read after the insert so it happens under the write lock
            new_balance = balance(db, child_id)
            if new_balance < 0:
                raise InsufficientPointsError(f"cannot deduct {-delta} points")
            self.logger.info(f"Parent {parent_id} adjusted child {child_id} by {delta:+d}, balance {new_balance}")
            return Adjustment(transaction_id=entry_id, balance=new_balance)


def _require_child(db: Session, child_id: str) -> User:
    child = db.get(User, child_id)
    if child is None or not child.is_child:
        raise NotFoundError("child not found")
    return child


def _check_viewer(db: Session, viewer_id: str | None, child_id: str) -> None:
    # the child itself or one of its parents
    if viewer_id is None or viewer_id == child_id:
        return
    if not is_parent_of(db, viewer_id, child_id):
        raise ForbiddenError("not a parent of this child")
