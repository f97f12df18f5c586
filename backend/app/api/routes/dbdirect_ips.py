"""
Direct database access allowlist endpoints.

PUT /dbdirect/ip (201), DELETE /dbdirect/ip (204), GET /dbdirect/ip (200).
All require authentication and the dbdirect feature flag, checked before the
firewall backend is built. Validation and firewall failures are rendered by
the handlers in app.main.
"""

from typing import Any

from fastapi import APIRouter, Response, status

from app.api.deps import AllowlistManagerDep, DbdirectUser, SessionDep
from app.core.dbdirect import effective_ips
from app.schemas_dbdirect import DbdirectIpPublic, DbdirectIpUpdate

router = APIRouter(prefix="/dbdirect", tags=["dbdirect"])


@router.put("/ip", status_code=status.HTTP_201_CREATED, response_model=DbdirectIpPublic)
def update_dbdirect_ips(
    current_user: DbdirectUser,
    manager: AllowlistManagerDep,
    body: DbdirectIpUpdate,
) -> Any:
    """Replace the allowlist (the organization's, for organization members)."""
    ips = manager.update(current_user, body.ips)
    return DbdirectIpPublic(ips=ips)


@router.delete("/ip", status_code=status.HTTP_204_NO_CONTENT)
def destroy_dbdirect_ips(
    current_user: DbdirectUser,
    manager: AllowlistManagerDep,
) -> Response:
    """Clear the allowlist in the firewall, then locally."""
    manager.delete(current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/ip", response_model=DbdirectIpPublic)
def show_dbdirect_ips(session: SessionDep, current_user: DbdirectUser) -> Any:
    """Effective allowlist; empty list when nothing is configured."""
    return DbdirectIpPublic(ips=effective_ips(session, current_user))
