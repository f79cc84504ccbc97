import logging

from taskreward.core.logging import setup_logging
from taskreward.db.session import SessionLocal
from taskreward.services.invitation_service import InvitationService


def main():
    setup_logging()
    count = InvitationService(SessionLocal, logging.getLogger("expire_invitations")).expire_stale_codes()
    print(f"Expired {count} invitation code(s).")


if __name__ == "__main__":
    main()
