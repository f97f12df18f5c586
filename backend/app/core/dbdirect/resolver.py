"""
Effective-identity resolution for allowlists.

A member of an organization (owner included) shares the organization's rule:
the rule identifier is the organization name and the allowlist row belongs to
the organization. Unaffiliated accounts own their rule under their username.
"""

from dataclasses import dataclass

from sqlmodel import Session

from app.core.dbdirect.store import AllowlistStore, OwningEntity
from app.models import Organization, User


@dataclass(frozen=True)
class DbdirectOwner:
    rule_id: str
    entity: OwningEntity


def resolve_owner(principal: User) -> DbdirectOwner:
    """Return the rule identifier and owning entity for `principal`."""
    org: Organization | None = principal.organization
    if org is not None:
        return DbdirectOwner(rule_id=org.name, entity=org)
    return DbdirectOwner(rule_id=principal.username, entity=principal)


def rule_identifier(principal: User) -> str:
    return resolve_owner(principal).rule_id


def effective_ips(session: Session, principal: User) -> list[str]:
    """Allowlist applying to `principal`; empty when nothing is configured."""
    owner = resolve_owner(principal)
    return AllowlistStore(session).get(owner.entity) or []
