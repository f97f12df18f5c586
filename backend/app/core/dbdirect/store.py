"""
Allowlist persistence (DbdirectIp rows).

Pure storage: no validation, no firewall awareness. put() replaces the whole
list (last write wins), clear() removes the row.
"""

from datetime import datetime, timezone
from typing import Any, Union

from sqlmodel import Session, select

from app.models import Organization, User
from app.models_dbdirect import DbdirectIp

OwningEntity = Union[User, Organization]


def _owner_clause(entity: OwningEntity) -> Any:
    if isinstance(entity, Organization):
        return DbdirectIp.organization_id == entity.id
    if isinstance(entity, User):
        return DbdirectIp.user_id == entity.id
    raise TypeError(f"Unsupported owning entity: {type(entity).__name__}")


class AllowlistStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _row(self, entity: OwningEntity) -> DbdirectIp | None:
        return self.session.exec(select(DbdirectIp).where(_owner_clause(entity))).first()

    def get(self, entity: OwningEntity) -> list[str] | None:
        """Stored list for `entity`, or None when no row exists."""
        row = self._row(entity)
        if row is None:
            return None
        return list(row.ips)

    def put(self, entity: OwningEntity, ips: list[str]) -> None:
        row = self._row(entity)
        if row is None:
            row = DbdirectIp(
                user_id=entity.id if isinstance(entity, User) else None,
                organization_id=entity.id if isinstance(entity, Organization) else None,
            )
        # New list object so the JSON column is flagged dirty.
        row.ips = list(ips)
        row.updated_at = datetime.now(timezone.utc)
        self.session.add(row)
        self.session.commit()

    def clear(self, entity: OwningEntity) -> None:
        row = self._row(entity)
        if row is None:
            return
        self.session.delete(row)
        self.session.commit()
