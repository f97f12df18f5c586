"""
Account models: User (principal) and Organization.

An account belongs to at most one Organization. Organization.owner_id points
at the owning User; the owner is also a member (organization_id set).
"""

import secrets
import uuid
from datetime import datetime, timezone

from pydantic import EmailStr
from sqlmodel import Field, Relationship, SQLModel


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_api_key() -> str:
    return secrets.token_urlsafe(32)


class Organization(SQLModel, table=True):
    __tablename__ = "organization"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=255, unique=True, index=True)
    # No FK: user.organization_id already references organization.
    owner_id: uuid.UUID | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=_utc_now)

    users: list["User"] = Relationship(back_populates="organization")


class UserBase(SQLModel):
    username: str = Field(max_length=255, unique=True, index=True)
    email: EmailStr = Field(unique=True, index=True, max_length=255)
    is_active: bool = True
    is_superuser: bool = False


class User(UserBase, table=True):
    __tablename__ = "user"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    hashed_password: str
    api_key: str = Field(
        default_factory=generate_api_key, max_length=255, unique=True, index=True
    )
    organization_id: uuid.UUID | None = Field(
        default=None, foreign_key="organization.id", ondelete="SET NULL", index=True
    )
    created_at: datetime = Field(default_factory=_utc_now)

    organization: Organization | None = Relationship(back_populates="users")

    @property
    def is_organization_owner(self) -> bool:
        org = self.organization
        return org is not None and org.owner_id == self.id


class UserPublic(UserBase):
    id: uuid.UUID
    organization_id: uuid.UUID | None = None


# JSON payload containing access token
class Token(SQLModel):
    access_token: str
    token_type: str = "bearer"


# Contents of JWT token
class TokenPayload(SQLModel):
    sub: str | None = None
