import pytest
from sqlalchemy import select, text

from taskreward.models.points import PointTransaction, TransactionType
from taskreward.models.user import UserRole
from taskreward.services.base import WorkflowService
from taskreward.services.errors import (
    ForbiddenError,
    InsufficientPointsError,
    InternalError,
    InvalidStateError,
    NotFoundError,
)
from taskreward.services.ledger import append_entry, balance, history


def _entries(session_factory, child_id):
    with session_factory() as db:
        return list(db.execute(select(PointTransaction).where(PointTransaction.child_id == child_id)).scalars())


def test_balance_is_zero_without_entries(session_factory, child) -> None:
    with session_factory() as db:
        assert balance(db, child.id) == 0


def test_balance_is_sum_of_entries(session_factory, parent, child) -> None:
    with session_factory() as db:
        for delta in (30, 25, -10):
            append_entry(
                db,
                child_id=child.id,
                delta=delta,
                transaction_type=TransactionType.MANUAL_ADJUSTMENT,
                acting_user_id=parent.id,
            )
        db.commit()

    with session_factory() as db:
        assert balance(db, child.id) == 45


def test_history_is_newest_first_and_paged(session_factory, parent, child) -> None:
    with session_factory() as db:
        for delta in (1, 2, 3):
            append_entry(
                db,
                child_id=child.id,
                delta=delta,
                transaction_type=TransactionType.MANUAL_ADJUSTMENT,
                acting_user_id=parent.id,
                notes=f"entry {delta}",
            )
        db.commit()

    with session_factory() as db:
        first = history(db, child.id, page=1, page_size=2)
        second = history(db, child.id, page=2, page_size=2)

    assert first.total == 3
    assert first.pages == 2
    assert [e.change_amount for e in first.items] == [3, 2]
    assert [e.change_amount for e in second.items] == [1]


def test_adjust_credits_and_debits(point_service, parent, child) -> None:
    credit = point_service.adjust(parent_id=parent.id, child_id=child.id, delta=50, notes="birthday")
    debit = point_service.adjust(parent_id=parent.id, child_id=child.id, delta=-20)

    assert credit.balance == 50
    assert debit.balance == 30
    assert point_service.balance(child.id) == 30
    page = point_service.history(child.id)
    assert page.items[0].id == debit.transaction_id
    assert page.items[0].transaction_type == TransactionType.MANUAL_ADJUSTMENT
    assert page.items[0].created_by_id == parent.id


def test_adjust_below_zero_rolls_back(session_factory, point_service, parent, child) -> None:
    point_service.adjust(parent_id=parent.id, child_id=child.id, delta=10)

    with pytest.raises(InsufficientPointsError):
        point_service.adjust(parent_id=parent.id, child_id=child.id, delta=-11)

    assert point_service.balance(child.id) == 10
    assert len(_entries(session_factory, child.id)) == 1


def test_adjust_validates_request(point_service, make_user, parent, child) -> None:
    stranger = make_user(UserRole.PARENT)

    with pytest.raises(InvalidStateError):
        point_service.adjust(parent_id=parent.id, child_id=child.id, delta=0)
    with pytest.raises(InvalidStateError):
        point_service.adjust(parent_id=parent.id, child_id=parent.id, delta=5)
    with pytest.raises(ForbiddenError):
        point_service.adjust(parent_id=stranger.id, child_id=child.id, delta=5)
    with pytest.raises(NotFoundError):
        point_service.adjust(parent_id=parent.id, child_id="missing", delta=5)


def test_balance_visible_to_child_and_parents_only(point_service, make_user, parent, child) -> None:
    stranger = make_user(UserRole.PARENT)

    assert point_service.balance(child.id, viewer_id=child.id) == 0
    assert point_service.balance(child.id, viewer_id=parent.id) == 0
    with pytest.raises(ForbiddenError):
        point_service.balance(child.id, viewer_id=stranger.id)


def test_unit_of_work_rolls_back_on_interrupt(session_factory, parent, child) -> None:
    service = WorkflowService(session_factory)

    with pytest.raises(KeyboardInterrupt):
        with service._atomic("interrupted") as db:
            append_entry(
                db,
                child_id=child.id,
                delta=99,
                transaction_type=TransactionType.MANUAL_ADJUSTMENT,
                acting_user_id=parent.id,
            )
            raise KeyboardInterrupt

    assert _entries(session_factory, child.id) == []


def test_storage_failure_surfaces_as_internal_error(session_factory) -> None:
    service = WorkflowService(session_factory)

    with pytest.raises(InternalError) as excinfo:
        with service._atomic("broken query") as db:
            db.execute(text("SELECT * FROM no_such_table"))

    assert excinfo.value.__cause__ is not None
