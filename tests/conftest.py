import itertools

import pytest

from taskreward.db import init_db
from taskreward.db.session import build_engine, build_session_factory
from taskreward.models.relationship import UserRelationship
from taskreward.models.user import User, UserRole
from taskreward.services.invitation_service import InvitationService
from taskreward.services.ledger import PointService
from taskreward.services.reward_service import RewardService
from taskreward.services.task_service import TaskService
from taskreward.services.user_service import UserService


@pytest.fixture
def engine(tmp_path):
    # a file, not :memory:, so every session and thread sees the same database
    engine = build_engine(f"sqlite:///{tmp_path / 'taskreward.db'}", echo=False)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def make_user(session_factory):
    counter = itertools.count(1)

    def _make(role: UserRole = UserRole.PARENT, username: str | None = None) -> User:
        username = username or f"{role}{next(counter)}"
        with session_factory() as db:
            user = User(
                username=username,
                email=f"{username}@example.com",
                role=role,
                hashed_password="not-a-real-hash",
            )
            db.add(user)
            db.commit()
            return user

    return _make


@pytest.fixture
def link(session_factory):
    def _link(parent: User, child: User) -> None:
        with session_factory() as db:
            db.add(UserRelationship(parent_id=parent.id, child_id=child.id))
            db.commit()

    return _link


@pytest.fixture
def parent(make_user) -> User:
    return make_user(UserRole.PARENT, "mom")


@pytest.fixture
def child(make_user, link, parent) -> User:
    kid = make_user(UserRole.CHILD, "ava")
    link(parent, kid)
    return kid


@pytest.fixture
def task_service(session_factory) -> TaskService:
    return TaskService(session_factory)


@pytest.fixture
def reward_service(session_factory) -> RewardService:
    return RewardService(session_factory)


@pytest.fixture
def point_service(session_factory) -> PointService:
    return PointService(session_factory)


@pytest.fixture
def invitation_service(session_factory) -> InvitationService:
    return InvitationService(session_factory)


@pytest.fixture
def user_service(session_factory) -> UserService:
    return UserService(session_factory)
