"""
Direct database access models.

Entities: DbdirectIp (persisted allowlist per owning entity), FeatureFlag and
FeatureFlagUserLink (per-user feature gate).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    """Timezone-aware UTC now (replaces deprecated datetime.utcnow())."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# DbdirectIp - allowlist mirror of the firewall rule
# ---------------------------------------------------------------------------


class DbdirectIp(SQLModel, table=True):
    """
    One row per owning entity: an unaffiliated User or an Organization.
    Exactly one of user_id / organization_id is set. `ips` keeps the order
    of the last successful write.
    """

    __tablename__ = "dbdirect_ip"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (organization_id IS NULL)",
            name="ck_dbdirect_ip_single_owner",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="CASCADE", unique=True
    )
    organization_id: uuid.UUID | None = Field(
        default=None, foreign_key="organization.id", ondelete="CASCADE", unique=True
    )
    ips: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# FeatureFlag - gate for the allowlist endpoints
# ---------------------------------------------------------------------------


class FeatureFlagUserLink(SQLModel, table=True):
    __tablename__ = "feature_flag_user"

    feature_flag_id: uuid.UUID = Field(
        foreign_key="feature_flag.id", primary_key=True, ondelete="CASCADE"
    )
    user_id: uuid.UUID = Field(
        foreign_key="user.id", primary_key=True, ondelete="CASCADE"
    )


class FeatureFlag(SQLModel, table=True):
    """Unrestricted flags apply to everyone; restricted ones only to linked users."""

    __tablename__ = "feature_flag"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=255, unique=True, index=True)
    restricted: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utc_now)
