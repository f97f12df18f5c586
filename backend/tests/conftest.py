import os

# Settings are read at import time; point them at a throwaway SQLite DB first.
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_dbdirect.db")
os.environ.setdefault("FIRST_SUPERUSER_PASSWORD", "superuser-test-password")
os.environ.setdefault("CACHE_ENABLED", "false")

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import delete  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from app.api.deps import get_firewall_manager  # noqa: E402
from app.core.db import engine, init_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models_dbdirect import DbdirectIp  # noqa: E402
from tests.utils.firewall import FIREWALL_CONFIG, RecordingFirewallManager  # noqa: E402
from tests.utils.user import create_random_user  # noqa: E402
from tests.utils.utils import get_superuser_token_headers  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def db() -> Generator[Session, None, None]:
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        init_db(session)
        yield session
    SQLModel.metadata.drop_all(engine)

@pytest.fixture(autouse=True)
def _clear_allowlists(db: Session) -> Generator[None, None, None]:
    yield
    db.rollback()
    db.execute(delete(DbdirectIp))
    db.commit()
    db.expire_all()

@pytest.fixture(scope="module")
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture(scope="module")
def superuser_token_headers(client: TestClient) -> dict[str, str]:
    return get_superuser_token_headers(client)

@pytest.fixture
def firewall() -> Generator[RecordingFirewallManager, None, None]:
    """Recording firewall injected in place of the configured backend."""
    manager = RecordingFirewallManager(FIREWALL_CONFIG)
    app.dependency_overrides[get_firewall_manager] = lambda: manager
    yield manager
    app.dependency_overrides.pop(get_firewall_manager, None)

@pytest.fixture
def dbdirect_user(db: Session):
    """Unaffiliated user with the dbdirect feature flag enabled."""
    return create_random_user(db, dbdirect=True)
