"""
AllowlistManager: update / delete / show a principal's effective allowlist.

Write path: validate -> resolve owner -> firewall replace -> store commit.
The store is written only after the firewall accepted the rule set, so the
stored allowlist never claims a state the firewall does not enforce. A
firewall failure leaves the store untouched and surfaces as FirewallError.
One attempt per call; no rollback of the firewall is attempted. A firewall
call that timed out holds back later writes of the same rule until it ends.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager, nullcontext
from typing import Any

from sqlmodel import Session

from app.core.config import DbdirectOptions
from app.core.dbdirect.firewall import FirewallManager, FirewallSynchronizer
from app.core.dbdirect.locks import rule_lock
from app.core.dbdirect.resolver import effective_ips, resolve_owner
from app.core.dbdirect.store import AllowlistStore
from app.core.dbdirect.validator import IpPolicy, validate_ips
from app.models import User

logger = logging.getLogger(__name__)


class AllowlistManager:
    def __init__(
        self,
        session: Session,
        synchronizer: FirewallSynchronizer,
        *,
        policy: IpPolicy | None = None,
        serialize: bool = False,
        lock_timeout: float = 30.0,
    ) -> None:
        self.session = session
        self.store = AllowlistStore(session)
        self.synchronizer = synchronizer
        self.policy = policy or IpPolicy()
        self.serialize = serialize
        self.lock_timeout = lock_timeout

    @classmethod
    def from_options(
        cls, session: Session, firewall: FirewallManager, options: DbdirectOptions
    ) -> "AllowlistManager":
        return cls(
            session,
            FirewallSynchronizer(firewall, timeout=options.firewall_timeout_seconds),
            policy=IpPolicy.from_options(options),
            serialize=options.rule_lock_enabled,
            lock_timeout=options.rule_lock_timeout_seconds,
        )

    @contextmanager
    def _serialized(self, rule_id: str) -> Iterator[None]:
        cm = rule_lock(rule_id, timeout=self.lock_timeout) if self.serialize else nullcontext()
        with cm:
            yield

    def update(self, principal: User, raw_ips: Any) -> list[str]:
        """
        Replace the effective allowlist of `principal` (its organization's when
        affiliated). Returns the normalized list.

        Raises IpValidationError (nothing touched) or FirewallError (store untouched).
        """
        ips = validate_ips(raw_ips, self.policy)
        owner = resolve_owner(principal)
        with self._serialized(owner.rule_id):
            self.synchronizer.replace_rule(owner.rule_id, ips)
            self.store.put(owner.entity, ips)
        logger.info(
            "Allowlist for rule %s updated by %s: %s", owner.rule_id, principal.username, ips
        )
        return ips

    def delete(self, principal: User) -> None:
        """Clear the effective allowlist. Raises FirewallError (store untouched)."""
        owner = resolve_owner(principal)
        with self._serialized(owner.rule_id):
            self.synchronizer.replace_rule(owner.rule_id, [])
            self.store.clear(owner.entity)
        logger.info("Allowlist for rule %s cleared by %s", owner.rule_id, principal.username)

    def show(self, principal: User) -> list[str]:
        return effective_ips(self.session, principal)
