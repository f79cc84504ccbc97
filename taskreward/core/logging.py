import logging

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once for the API process."""
    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format=LOG_FORMAT)
    # SQL statements only show up when SQL_ECHO is on
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.SQL_ECHO else logging.WARNING)
