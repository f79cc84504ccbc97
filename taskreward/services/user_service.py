from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.relationship import UserRelationship
from ..models.user import User, UserRole
from .base import Page, WorkflowService, paginate
from .errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    NotParentRoleError,
)
from .relationships import children_of, get_link, parents_of
from .security import hash_password, verify_password


def get_by_identifier(db: Session, identifier: str) -> User | None:
    """Look a user up by username or email."""
    identifier = identifier.strip()
    return db.execute(
        select(User).where(or_(User.username == identifier, User.email == identifier.lower()))
    ).scalar_one_or_none()


def _require_parent(db: Session, parent_id: str) -> User:
    parent = db.get(User, parent_id)
    if parent is None:
        raise NotFoundError("user not found")
    if not parent.is_parent:
        raise NotParentRoleError()
    return parent


def _new_user(
    db: Session, *, username: str, email: str, password: str, full_name: str | None, role: UserRole
) -> User:
    email = email.strip().lower()
    taken = db.execute(
        select(User.id).where(or_(User.username == username, User.email == email))
    ).first()
    if taken:
        raise ConflictError("username or email already registered")
    user = User(
        username=username,
        email=email,
        full_name=full_name,
        role=role,
        hashed_password=hash_password(password),
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as e:
        raise ConflictError("username or email already registered") from e
    return user


def _get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("user not found")
    return user


def _apply_identity(db: Session, user: User, *, username: str | None, email: str | None, full_name: str | None) -> None:
    if username is not None and username != user.username:
        if db.execute(select(User.id).where(User.username == username)).first():
            raise ConflictError("username already registered")
        user.username = username
    if email is not None:
        email = email.strip().lower()
        if email != user.email:
            if db.execute(select(User.id).where(User.email == email)).first():
                raise ConflictError("email already registered")
            user.email = email
    if full_name is not None:
        user.full_name = full_name
    try:
        db.flush()
    except IntegrityError as e:
        raise ConflictError("username or email already registered") from e


def _has_links(db: Session, user_id: str) -> bool:
    stmt = select(
        exists().where(or_(UserRelationship.parent_id == user_id, UserRelationship.child_id == user_id))
    )
    return bool(db.execute(stmt).scalar())


class UserService(WorkflowService):
    def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        role: UserRole | str,
        full_name: str | None = None,
    ) -> User:
        role = UserRole(role)
        with self._atomic("register") as db:
            if role == UserRole.ADMIN:
                raise ForbiddenError("admin accounts cannot self-register")
            self.logger.info(f"Registering {role} account: username={username}, email={email}")
            user = _new_user(db, username=username, email=email, password=password, full_name=full_name, role=role)
            self.logger.info(f"User created successfully: id={user.id}, username={user.username}")
            return user

    def authenticate(self, identifier: str, password: str) -> User | None:
        with self._atomic("authenticate") as db:
            user = get_by_identifier(db, identifier)
            if not user or not user.is_active:
                return None
            if not verify_password(password, user.hashed_password):
                self.logger.warning(f"Failed login for {identifier}")
                return None
            return user

    def create_admin(self, *, username: str, email: str, password: str, full_name: str | None = None) -> User:
        """Provisioning path for admin accounts, which cannot sign up through the API."""
        with self._atomic("create admin") as db:
            user = _new_user(
                db, username=username, email=email, password=password, full_name=full_name, role=UserRole.ADMIN
            )
            self.logger.info(f"Admin account created: id={user.id}, username={user.username}")
            return user

    def get_user(self, user_id: str) -> User:
        with self._atomic("get user") as db:
            return _get_user(db, user_id)

    # own profile

    def update_profile(
        self,
        user_id: str,
        *,
        username: str | None = None,
        email: str | None = None,
        full_name: str | None = None,
    ) -> User:
        with self._atomic("update profile") as db:
            user = _get_user(db, user_id)
            _apply_identity(db, user, username=username, email=email, full_name=full_name)
            db.refresh(user)
            self.logger.info(f"User {user_id} updated their profile")
            return user

    def change_password(self, user_id: str, *, current_password: str, new_password: str) -> None:
        with self._atomic("change password") as db:
            user = _get_user(db, user_id)
            if not verify_password(current_password, user.hashed_password):
                raise InvalidInputError("current password is incorrect")
            if current_password == new_password:
                raise InvalidInputError("new password must differ from the current one")
            user.hashed_password = hash_password(new_password)
            self.logger.info(f"User {user_id} changed their password")

    # administration

    def list_users(
        self,
        *,
        role: UserRole | None = None,
        is_active: bool | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page:
        stmt = select(User)
        if role is not None:
            stmt = stmt.where(User.role == role)
        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))
        stmt = stmt.order_by(User.created_at, User.username)
        with self._atomic("list users") as db:
            return paginate(db, stmt, page=page, page_size=page_size)

    def update_user(
        self,
        user_id: str,
        *,
        admin_id: str,
        username: str | None = None,
        email: str | None = None,
        full_name: str | None = None,
        role: UserRole | str | None = None,
        is_active: bool | None = None,
    ) -> User:
        with self._atomic("update user") as db:
            user = _get_user(db, user_id)
            if user_id == admin_id and (is_active is False or (role is not None and UserRole(role) != UserRole.ADMIN)):
                raise InvalidStateError("admins cannot demote or deactivate themselves")
            _apply_identity(db, user, username=username, email=email, full_name=full_name)
            if role is not None and UserRole(role) != user.role:
                # a role swap would leave parent/child links pointing the wrong way
                if _has_links(db, user_id):
                    raise ConflictError("user has parent/child links; unlink before changing role")
                user.role = UserRole(role)
            if is_active is not None:
                user.is_active = is_active
            db.flush()
            db.refresh(user)
            self.logger.info(f"Admin {admin_id} updated user {user_id}: role={user.role}, active={user.is_active}")
            return user

    def deactivate_user(self, user_id: str, *, admin_id: str) -> User:
        """Soft delete: the account keeps its ledger and history but can no longer sign in."""
        with self._atomic("deactivate user") as db:
            if user_id == admin_id:
                raise InvalidStateError("admins cannot deactivate themselves")
            user = _get_user(db, user_id)
            user.is_active = False
            db.flush()
            self.logger.info(f"Admin {admin_id} deactivated user {user_id}")
            return user

    def create_child_account(
        self,
        *,
        parent_id: str,
        username: str,
        email: str,
        password: str,
        full_name: str | None = None,
    ) -> User:
        """Create a child login and link it to the parent in one go."""
        with self._atomic("create child account") as db:
            _require_parent(db, parent_id)
            child = _new_user(
                db, username=username, email=email, password=password, full_name=full_name, role=UserRole.CHILD
            )
            db.add(UserRelationship(parent_id=parent_id, child_id=child.id))
            db.flush()
            self.logger.info(f"Parent {parent_id} created child account {child.id}")
            return child

    def add_child(self, *, parent_id: str, identifier: str) -> User:
        with self._atomic("add child") as db:
            _require_parent(db, parent_id)
            child = get_by_identifier(db, identifier)
            if child is None:
                raise NotFoundError("user not found")
            if child.id == parent_id:
                raise InvalidStateError("cannot link an account to itself")
            if not child.is_child:
                raise ConflictError("user is not a child account")
            if get_link(db, parent_id, child.id) is not None:
                raise ConflictError("child is already linked")
            db.add(UserRelationship(parent_id=parent_id, child_id=child.id))
            try:
                db.flush()
            except IntegrityError as e:
                raise ConflictError("child is already linked") from e
            self.logger.info(f"Parent {parent_id} linked child {child.id}")
            return child

    def remove_child(self, *, parent_id: str, child_id: str) -> None:
        with self._atomic("remove child") as db:
            link = get_link(db, parent_id, child_id)
            if link is None:
                raise NotFoundError("child is not linked to this parent")
            db.delete(link)
            self.logger.info(f"Parent {parent_id} unlinked child {child_id}")

    def list_children(self, parent_id: str) -> list[User]:
        with self._atomic("list children") as db:
            return children_of(db, parent_id)

    def list_parents(self, child_id: str) -> list[User]:
        with self._atomic("list parents") as db:
            return parents_of(db, child_id)
