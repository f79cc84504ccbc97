import argparse
import getpass
import logging

from taskreward.core.logging import setup_logging
from taskreward.db import init_db
from taskreward.db.session import SessionLocal
from taskreward.services.user_service import UserService


def main():
    parser = argparse.ArgumentParser(description="Create an admin account.")
    parser.add_argument("username")
    parser.add_argument("email")
    parser.add_argument("--full-name")
    args = parser.parse_args()

    setup_logging()
    init_db()
    password = getpass.getpass("Password: ")
    user = UserService(SessionLocal, logging.getLogger("create_admin")).create_admin(
        username=args.username, email=args.email, password=password, full_name=args.full_name
    )
    print(f"Created admin {user.username} ({user.id}).")


if __name__ == "__main__":
    main()
