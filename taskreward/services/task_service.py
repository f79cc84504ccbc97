from sqlalchemy import exists, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from ..models import utcnow
from ..models.points import TransactionType
from ..models.relationship import UserRelationship
from ..models.task import ACTIVE_TASK_STATUSES, Task, UserTask, UserTaskStatus
from ..models.user import User
from .base import Decision, Page, WorkflowService, paginate, parse_decision
from .errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError, NotParentRoleError
from .ledger import append_entry
from .relationships import has_shared_child, is_parent_of


def _get_task(db: Session, task_id: str) -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise NotFoundError("task not found")
    return task


def _get_child(db: Session, child_id: str) -> User:
    child = db.get(User, child_id)
    if child is None or not child.is_child:
        raise NotFoundError("child not found")
    return child


def _require_parent(db: Session, parent_id: str) -> User:
    parent = db.get(User, parent_id)
    if parent is None:
        raise NotFoundError("user not found")
    if not parent.is_parent:
        raise NotParentRoleError()
    return parent


def _has_active_assignment(db: Session, *, task_id: str, child_id: str | None = None) -> bool:
    clauses = [UserTask.task_id == task_id, UserTask.status.in_(ACTIVE_TASK_STATUSES)]
    if child_id is not None:
        clauses.append(UserTask.child_id == child_id)
    return bool(db.execute(select(exists().where(*clauses))).scalar())


def _transition(db: Session, user_task_id: str, expected: UserTaskStatus, **values) -> None:
    """Move a UserTask out of ``expected``; a concurrent writer that got there first wins."""
    result = db.execute(
        update(UserTask)
        .where(UserTask.id == user_task_id, UserTask.status == expected)
        .values(updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidStateError(f"task is no longer {expected}")


class TaskService(WorkflowService):
    """Task definitions and the assigned -> submitted -> approved/rejected workflow."""

    # definitions

    def create_definition(self, *, parent_id: str, name: str, points: int, description: str | None = None) -> Task:
        with self._atomic("create task") as db:
            _require_parent(db, parent_id)
            if points <= 0:
                raise InvalidStateError("points must be positive")
            task = Task(name=name, points=points, description=description, created_by_id=parent_id)
            db.add(task)
            db.flush()
            self.logger.info(f"Task {task.id} '{name}' ({points} pts) created by {parent_id}")
            return task

    def update_definition(
        self,
        *,
        task_id: str,
        parent_id: str,
        name: str | None = None,
        points: int | None = None,
        description: str | None = None,
    ) -> Task:
        with self._atomic("update task") as db:
            task = _get_task(db, task_id)
            if task.created_by_id != parent_id:
                raise ForbiddenError("only the creator can edit this task")
            if _has_active_assignment(db, task_id=task_id):
                raise ConflictError("task has active assignments")
            if points is not None and points <= 0:
                raise InvalidStateError("points must be positive")

            if name is not None:
                task.name = name
            if points is not None:
                task.points = points
            if description is not None:
                task.description = description
            db.flush()
            db.refresh(task)
            return task

    def delete_definition(self, *, task_id: str, parent_id: str) -> None:
        with self._atomic("delete task") as db:
            task = _get_task(db, task_id)
            if task.created_by_id != parent_id:
                raise ForbiddenError("only the creator can delete this task")
            if db.execute(select(exists().where(UserTask.task_id == task_id))).scalar():
                raise ConflictError("task has been assigned and cannot be deleted")
            db.delete(task)
            self.logger.info(f"Task {task_id} deleted by {parent_id}")

    # workflow

    def assign(self, *, child_id: str, task_id: str, parent_id: str) -> str:
        with self._atomic("assign task") as db:
            task = _get_task(db, task_id)
            _get_child(db, child_id)
            if not is_parent_of(db, parent_id, child_id):
                raise ForbiddenError("not a parent of this child")
            if task.created_by_id != parent_id and not has_shared_child(db, parent_id, task.created_by_id):
                raise ForbiddenError("task belongs to an unrelated parent")
            if _has_active_assignment(db, task_id=task_id, child_id=child_id):
                raise ConflictError("child already has this task in progress")

            user_task = UserTask(task_id=task_id, child_id=child_id, assigned_by_id=parent_id)
            db.add(user_task)
            try:
                db.flush()
            except IntegrityError as e:
                # a concurrent assigner inserted first; the partial unique index caught it
                raise ConflictError("child already has this task in progress") from e
            self.logger.info(f"Task {task_id} assigned to child {child_id} by {parent_id} as {user_task.id}")
            return user_task.id

    def submit(self, *, user_task_id: str, child_id: str) -> UserTask:
        with self._atomic("submit task") as db:
            user_task = db.get(UserTask, user_task_id)
            if user_task is None or user_task.child_id != child_id:
                raise NotFoundError("assignment not found")
            if user_task.status != UserTaskStatus.ASSIGNED:
                raise InvalidStateError(f"task is {user_task.status}, not assigned")

            _transition(db, user_task_id, UserTaskStatus.ASSIGNED, status=UserTaskStatus.SUBMITTED, submitted_at=utcnow())
            db.refresh(user_task)
            self.logger.info(f"UserTask {user_task_id} submitted by child {child_id}")
            return user_task

    def verify(self, *, user_task_id: str, parent_id: str, decision: Decision | str) -> UserTask:
        """Approve or reject a submitted task. Approval credits the task's points in the same transaction."""
        with self._atomic("verify task") as db:
            user_task = db.get(UserTask, user_task_id)
            if user_task is None:
                raise NotFoundError("assignment not found")
            decision = parse_decision(decision)
            if not is_parent_of(db, parent_id, user_task.child_id):
                raise ForbiddenError("not a parent of this child")
            if user_task.status != UserTaskStatus.SUBMITTED:
                raise InvalidStateError(f"task is {user_task.status}, not submitted")

            now = utcnow()
            if decision == Decision.APPROVED:
                _transition(
                    db,
                    user_task_id,
                    UserTaskStatus.SUBMITTED,
                    status=UserTaskStatus.APPROVED,
                    verified_by_id=parent_id,
                    verified_at=now,
                    completed_at=now,
                )
                append_entry(
                    db,
                    child_id=user_task.child_id,
                    delta=user_task.task.points,
                    transaction_type=TransactionType.TASK_COMPLETION,
                    acting_user_id=parent_id,
                    notes=f"Task '{user_task.task.name}' approved",
                    related_user_task_id=user_task_id,
                )
            else:
                _transition(
                    db,
                    user_task_id,
                    UserTaskStatus.SUBMITTED,
                    status=UserTaskStatus.REJECTED,
                    verified_by_id=parent_id,
                    verified_at=now,
                )
            db.refresh(user_task)
            self.logger.info(f"UserTask {user_task_id} {user_task.status} by parent {parent_id}")
            return user_task

    # listings

    def get_user_task(self, user_task_id: str) -> UserTask:
        with self._atomic("get task") as db:
            user_task = db.get(UserTask, user_task_id)
            if user_task is None:
                raise NotFoundError("assignment not found")
            return user_task

    def list_definitions_for_parent(
        self, parent_id: str, *, page: int | None = None, page_size: int | None = None
    ) -> Page:
        """Definitions the parent may assign: its own plus those of parents it shares a child with."""
        mine = aliased(UserRelationship)
        theirs = aliased(UserRelationship)
        co_parents = (
            select(theirs.parent_id)
            .join(mine, mine.child_id == theirs.child_id)
            .where(mine.parent_id == parent_id)
        )
        stmt = (
            select(Task)
            .where(or_(Task.created_by_id == parent_id, Task.created_by_id.in_(co_parents)))
            .order_by(Task.created_at.desc())
        )
        with self._atomic("list task definitions") as db:
            return paginate(db, stmt, page=page, page_size=page_size)

    def list_tasks_for_child(
        self,
        child_id: str,
        *,
        status: UserTaskStatus | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page:
        stmt = select(UserTask).where(UserTask.child_id == child_id)
        if status is not None:
            stmt = stmt.where(UserTask.status == status)
        stmt = stmt.order_by(UserTask.assigned_at.desc())
        with self._atomic("list child tasks") as db:
            return paginate(db, stmt, page=page, page_size=page_size)

    def list_tasks_for_parent(
        self,
        parent_id: str,
        *,
        status: UserTaskStatus | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page:
        """Assignments of every child linked to the parent, whoever assigned them."""
        children = select(UserRelationship.child_id).where(UserRelationship.parent_id == parent_id)
        stmt = select(UserTask).where(UserTask.child_id.in_(children))
        if status is not None:
            stmt = stmt.where(UserTask.status == status)
        stmt = stmt.order_by(UserTask.assigned_at.desc())
        with self._atomic("list parent tasks") as db:
            return paginate(db, stmt, page=page, page_size=page_size)
