"""
Pydantic schemas for the direct database access allowlist API.

`ips` is untyped on the request body. app.core.dbdirect.validator checks shape
and content and reports rejections as {"errors": {"ips": [...]}}.
"""

from typing import Any

from pydantic import Field
from sqlmodel import SQLModel


class DbdirectIpUpdate(SQLModel):
    """Body for PUT /dbdirect/ip."""

    ips: Any = Field(default=None, description="Ordered list of IPs or CIDR ranges.")


class DbdirectIpPublic(SQLModel):
    """Response for PUT/GET /dbdirect/ip."""

    ips: list[str] = Field(default_factory=list)
