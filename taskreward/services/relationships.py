from sqlalchemy import and_, exists, select
from sqlalchemy.orm import Session, aliased

from ..models.relationship import UserRelationship
from ..models.user import User


def is_parent_of(db: Session, parent_id: str, child_id: str) -> bool:
    stmt = select(
        exists().where(
            and_(UserRelationship.parent_id == parent_id, UserRelationship.child_id == child_id)
        )
    )
    return bool(db.execute(stmt).scalar())


def has_shared_child(db: Session, parent_a: str, parent_b: str) -> bool:
    """True when both parents are linked to at least one common child.

    A parent trivially shares children with itself, but only if it has any.
    """
    a = aliased(UserRelationship)
    b = aliased(UserRelationship)
    stmt = select(
        exists().where(
            and_(a.parent_id == parent_a, b.parent_id == parent_b, a.child_id == b.child_id)
        )
    )
    return bool(db.execute(stmt).scalar())


def children_of(db: Session, parent_id: str) -> list[User]:
    stmt = (
        select(User)
        .join(UserRelationship, UserRelationship.child_id == User.id)
        .where(UserRelationship.parent_id == parent_id)
        .order_by(User.username)
    )
    return list(db.execute(stmt).scalars())


def parents_of(db: Session, child_id: str) -> list[User]:
    stmt = (
        select(User)
        .join(UserRelationship, UserRelationship.parent_id == User.id)
        .where(UserRelationship.child_id == child_id)
        .order_by(User.username)
    )
    return list(db.execute(stmt).scalars())


def get_link(db: Session, parent_id: str, child_id: str) -> UserRelationship | None:
    return db.execute(
        select(UserRelationship).where(
            UserRelationship.parent_id == parent_id, UserRelationship.child_id == child_id
        )
    ).scalar_one_or_none()
