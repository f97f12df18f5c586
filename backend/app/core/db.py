import logging

from sqlmodel import Session, create_engine, select

from app.core.config import settings
from app.core.security import get_password_hash
from app.models import User
from app.models_dbdirect import FeatureFlag

logger = logging.getLogger(__name__)

_connect_args = (
    {"check_same_thread": False}
    if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite")
    else {}
)

engine = create_engine(
    str(settings.SQLALCHEMY_DATABASE_URI),
    connect_args=_connect_args,
    pool_pre_ping=True,
)


# make sure all SQLModel models are imported (app.models, app.models_dbdirect)
# before initializing DB, otherwise SQLModel might fail to initialize
# relationships properly
# for more details: https://github.com/fastapi/full-stack-fastapi-template/issues/28


def init_db(session: Session) -> None:
    # Tables should be created with Alembic migrations
    user = session.exec(
        select(User).where(User.username == settings.FIRST_SUPERUSER)
    ).first()
    if not user:
        user = User(
            username=settings.FIRST_SUPERUSER,
            email=settings.FIRST_SUPERUSER_EMAIL,
            hashed_password=get_password_hash(settings.FIRST_SUPERUSER_PASSWORD),
            is_superuser=True,
        )
        session.add(user)
        logger.info("Created first superuser %s", settings.FIRST_SUPERUSER)

    flag_name = settings.dbdirect.feature_flag
    flag = session.exec(select(FeatureFlag).where(FeatureFlag.name == flag_name)).first()
    if not flag:
        session.add(FeatureFlag(name=flag_name, restricted=True))
        logger.info("Created feature flag %s (restricted)", flag_name)

    session.commit()
