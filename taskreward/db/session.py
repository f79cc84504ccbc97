from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ..core.config import settings


def _use_immediate_transactions(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first DML and breaks SAVEPOINT; emit it ourselves.
    # IMMEDIATE takes the write lock up front, so concurrent units of work queue on the busy timeout.
    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str | None = None, *, echo: bool | None = None) -> Engine:
    url = url or settings.DATABASE_URL
    connect_args = {}
    if url.startswith("sqlite"):
        # sqlite connections are shared across the request threadpool
        connect_args = {"check_same_thread": False, "timeout": settings.SQLITE_BUSY_TIMEOUT}
    engine = create_engine(
        url,
        echo=settings.SQL_ECHO if echo is None else echo,
        future=True,
        connect_args=connect_args,
    )
    if engine.dialect.name == "sqlite":
        _use_immediate_transactions(engine)
    return engine


def build_session_factory(bind: Engine) -> sessionmaker:
    # expire_on_commit=False keeps returned rows readable after the unit of work closes
    return sessionmaker(
        bind=bind,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )


engine = build_engine()
SessionLocal = build_session_factory(engine)
