import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, Iterator, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.config import settings
from .errors import InternalError, InvalidInputError, WorkflowError

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size if self.page_size else 0


def clamp_page(page: int | None, page_size: int | None) -> tuple[int, int]:
    page = max(page or 1, 1)
    page_size = page_size or settings.DEFAULT_PAGE_SIZE
    return page, min(max(page_size, 1), settings.MAX_PAGE_SIZE)


def paginate(db: Session, stmt: Select, *, page: int | None = None, page_size: int | None = None) -> Page:
    page, page_size = clamp_page(page, page_size)
    total = db.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()
    items = list(db.execute(stmt.offset((page - 1) * page_size).limit(page_size)).scalars())
    return Page(items=items, total=total, page=page, page_size=page_size)


class WorkflowService:
    """Common plumbing for the workflow services.

    Every public operation runs inside ``_atomic``: one session, one
    transaction. The transaction commits when the block finishes and rolls
    back on any exception, including ``KeyboardInterrupt`` and task
    cancellation. Storage errors are logged and surfaced as ``InternalError``.
    """

    def __init__(self, session_factory: sessionmaker, logger: logging.Logger | None = None):
        self._session_factory = session_factory
        self.logger = logger or logging.getLogger(type(self).__module__)

    @contextmanager
    def _atomic(self, operation: str) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except WorkflowError as e:
            db.rollback()
            self.logger.warning(f"{operation} rejected: {e.kind} ({e.message})")
            raise
        except SQLAlchemyError as e:
            db.rollback()
            self.logger.error(f"{operation} failed: {e}", exc_info=True)
            raise InternalError(f"{operation} failed") from e
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()


class Decision(StrEnum):
    """A parent's verdict; the values match the terminal task and claim statuses."""

    APPROVED = "approved"
    REJECTED = "rejected"


def parse_decision(value: "Decision | str") -> Decision:
    try:
        return Decision(str(value).strip().lower())
    except ValueError:
        raise InvalidInputError(f"unknown decision {value!r}") from None
