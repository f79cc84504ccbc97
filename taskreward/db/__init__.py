from sqlalchemy.engine import Engine


def init_db(bind: Engine | None = None) -> None:
    """Create every table registered on the declarative Base."""
    from .base import Base
    from .session import engine

    Base.metadata.create_all(bind=bind or engine)
