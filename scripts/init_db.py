from taskreward.core.logging import setup_logging
from taskreward.db import init_db


def init():
    setup_logging()
    init_db()


if __name__ == "__main__":
    init()
    print("Database schema created.")
