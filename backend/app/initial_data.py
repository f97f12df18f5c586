"""Initial data: first superuser, the dbdirect feature flag, and flag access for superusers."""

import logging

from sqlmodel import Session, select

from app.core.config import settings
from app.core.db import engine, init_db
from app.core.feature_flags import has_feature_flag, set_feature_flag
from app.models import User

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def grant_dbdirect_to_superusers(session: Session) -> None:
    flag_name = settings.dbdirect.feature_flag
    superusers = session.exec(select(User).where(User.is_superuser)).all()
    for user in superusers:
        if not has_feature_flag(session, user, flag_name):
            set_feature_flag(session, user, flag_name, True)
            logger.info("Granted %s to user: %s", flag_name, user.username)


def init() -> None:
    with Session(engine) as session:
        init_db(session)
        grant_dbdirect_to_superusers(session)


def main() -> None:
    logger.info("Creating initial data")
    init()
    logger.info("Initial data created")


if __name__ == "__main__":
    main()
