import logging
import secrets
from datetime import timedelta
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from ..core.config import settings
from ..models import as_utc, utcnow
from ..models.invite import InvitationCode, InvitationStatus
from ..models.relationship import UserRelationship
from ..models.user import User
from .base import WorkflowService
from .errors import (
    AlreadyRelatedError,
    ForbiddenError,
    InternalError,
    InvalidCodeError,
    NotFoundError,
    NotParentRoleError,
)
from .relationships import is_parent_of

# no 0/O or 1/I so codes survive being read aloud
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_code(length: int) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return code.strip().upper()


class InvitationService(WorkflowService):
    """Lets a parent of a child invite another parent to co-parent that child.

    A code is single-use: redemption flips it from active to used with a
    conditional update, so of two parents redeeming the same code at once
    exactly one is linked and the other gets ``InvalidCodeError``.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        logger: logging.Logger | None = None,
        *,
        code_length: int | None = None,
        ttl: timedelta | None = None,
        max_attempts: int | None = None,
        code_generator: Callable[[int], str] | None = None,
    ):
        super().__init__(session_factory, logger)
        self.code_length = code_length or settings.INVITE_CODE_LENGTH
        self.ttl = ttl or timedelta(hours=settings.INVITE_CODE_TTL_HOURS)
        self.max_attempts = max_attempts or settings.INVITE_CODE_MAX_ATTEMPTS
        self._generate = code_generator or generate_code

    def issue(self, *, parent_id: str, child_id: str) -> str:
        with self._atomic("issue invitation") as db:
            if not is_parent_of(db, parent_id, child_id):
                raise ForbiddenError("not a parent of this child")

            expires_at = utcnow() + self.ttl
            for attempt in range(1, self.max_attempts + 1):
                code = self._generate(self.code_length)
                try:
                    with db.begin_nested():
                        db.add(
                            InvitationCode(
                                code=code,
                                child_id=child_id,
                                created_by_id=parent_id,
                                expires_at=expires_at,
                            )
                        )
                except IntegrityError:
                    self.logger.warning(f"Invitation code collision (attempt {attempt}/{self.max_attempts})")
                    continue
                self.logger.info(f"Parent {parent_id} issued invitation for child {child_id}, expires {expires_at}")
                return code
            raise InternalError("could not generate a unique invitation code")

    def redeem(self, *, parent_id: str, code: str) -> UserRelationship:
        code = normalize_code(code)
        with self._atomic("redeem invitation") as db:
            now = utcnow()
            invitation = db.execute(select(InvitationCode).where(InvitationCode.code == code)).scalar_one_or_none()
            if (
                invitation is None
                or invitation.status != InvitationStatus.ACTIVE
                or as_utc(invitation.expires_at) <= now
            ):
                raise InvalidCodeError()

            joiner = db.get(User, parent_id)
            if joiner is None:
                raise NotFoundError("user not found")
            if not joiner.is_parent:
                raise NotParentRoleError()
            if invitation.created_by_id == parent_id:
                raise ForbiddenError("cannot redeem your own invitation")
            if is_parent_of(db, parent_id, invitation.child_id):
                raise AlreadyRelatedError()

            result = db.execute(
                update(InvitationCode)
                .where(
                    InvitationCode.id == invitation.id,
                    InvitationCode.status == InvitationStatus.ACTIVE,
                    InvitationCode.expires_at > now,
                )
                .values(status=InvitationStatus.USED, used_by_id=parent_id, used_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidCodeError()

            link = UserRelationship(parent_id=parent_id, child_id=invitation.child_id)
            db.add(link)
            try:
                db.flush()
            except IntegrityError as e:
                raise AlreadyRelatedError() from e
            self.logger.info(f"Parent {parent_id} joined child {invitation.child_id} via invitation {invitation.id}")
            return link

    def expire_stale_codes(self) -> int:
        """Mark every active code past its expiry as expired. Returns how many were flipped."""
        with self._atomic("expire invitations") as db:
            now = utcnow()
            result = db.execute(
                update(InvitationCode)
                .where(InvitationCode.status == InvitationStatus.ACTIVE, InvitationCode.expires_at <= now)
                .values(status=InvitationStatus.EXPIRED, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                self.logger.info(f"Expired {result.rowcount} invitation code(s)")
            return result.rowcount

    def list_codes(self, *, parent_id: str, child_id: str) -> list[InvitationCode]:
        with self._atomic("list invitations") as db:
            if not is_parent_of(db, parent_id, child_id):
                raise ForbiddenError("not a parent of this child")
            stmt = (
                select(InvitationCode)
                .where(InvitationCode.child_id == child_id)
                .order_by(InvitationCode.created_at.desc())
            )
            return list(db.execute(stmt).scalars())
