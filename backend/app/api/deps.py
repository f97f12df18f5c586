import functools
import uuid
from collections.abc import Callable, Generator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyQuery, OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError
from sqlmodel import Session, select

from app.core import security
from app.core.config import settings
from app.core.db import engine
from app.core.dbdirect import AllowlistManager, FirewallManager, build_firewall_manager
from app.core.feature_flags import has_feature_flag
from app.models import TokenPayload, User

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/login/access-token", auto_error=False
)
api_key_query = APIKeyQuery(name="api_key", auto_error=False)


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
TokenDep = Annotated[str | None, Depends(reusable_oauth2)]
ApiKeyDep = Annotated[str | None, Depends(api_key_query)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(session: Session, token: str) -> User | None:
    try:
        payload = security.decode_access_token(token)
        token_data = TokenPayload(**payload)
        user_id = uuid.UUID(str(token_data.sub))
    except (InvalidTokenError, ValidationError, ValueError):
        return None
    return session.get(User, user_id)


def _user_from_api_key(session: Session, api_key: str) -> User | None:
    return session.exec(select(User).where(User.api_key == api_key)).first()


def get_current_user(session: SessionDep, token: TokenDep, api_key: ApiKeyDep) -> User:
    """
    Resolve the principal from a Bearer JWT (login) or an `api_key` query
    parameter. Missing or invalid credentials and inactive users → 401.
    """
    if not token and not api_key:
        raise _unauthorized("Not authenticated")
    user = _user_from_token(session, token) if token else _user_from_api_key(session, api_key)
    if not user:
        raise _unauthorized("Could not validate credentials")
    if not user.is_active:
        raise _unauthorized("Inactive user")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_feature_flag(name: str) -> Callable[..., User]:
    """
    Dependency factory: require the current user to have feature flag `name`.
    Use: Depends(require_feature_flag("dbdirect")).
    """

    def _dependency(session: SessionDep, current_user: CurrentUser) -> User:
        if has_feature_flag(session, current_user, name):
            return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Feature not enabled: {name}",
        )

    return _dependency


DbdirectUser = Annotated[User, Depends(require_feature_flag(settings.DBDIRECT_FEATURE_FLAG))]


@functools.lru_cache(maxsize=1)
def get_firewall_manager() -> FirewallManager:
    """One firewall backend per process, built from settings. Override in tests."""
    return build_firewall_manager(settings.dbdirect)


FirewallManagerDep = Annotated[FirewallManager, Depends(get_firewall_manager)]


def get_allowlist_manager(
    session: SessionDep, firewall: FirewallManagerDep
) -> AllowlistManager:
    return AllowlistManager.from_options(session, firewall, settings.dbdirect)


AllowlistManagerDep = Annotated[AllowlistManager, Depends(get_allowlist_manager)]
