"""
Feature flag evaluation.

has_feature_flag(session, user, name):
- Flag not found → False.
- Unrestricted flag → True for every user.
- Restricted flag → True only when linked to the user (feature_flag_user).
"""

from sqlmodel import Session, select

from app.models import User
from app.models_dbdirect import FeatureFlag, FeatureFlagUserLink


def get_feature_flag(session: Session, name: str) -> FeatureFlag | None:
    return session.exec(select(FeatureFlag).where(FeatureFlag.name == name)).first()


def has_feature_flag(session: Session, user: User, name: str) -> bool:
    flag = get_feature_flag(session, name)
    if flag is None:
        return False
    if not flag.restricted:
        return True
    link = session.get(FeatureFlagUserLink, (flag.id, user.id))
    return link is not None


def set_feature_flag(session: Session, user: User, name: str, enabled: bool) -> None:
    """Grant or revoke a restricted flag for one user. Raises ValueError if the flag is missing."""
    flag = get_feature_flag(session, name)
    if flag is None:
        raise ValueError(f"Feature flag '{name}' not found")
    link = session.get(FeatureFlagUserLink, (flag.id, user.id))
    if enabled and link is None:
        session.add(FeatureFlagUserLink(feature_flag_id=flag.id, user_id=user.id))
    elif not enabled and link is not None:
        session.delete(link)
    session.commit()
