"""
Direct database access allowlist: validator, resolver, store, firewall, manager.
"""

from app.core.dbdirect.errors import (
    DbdirectError,
    FirewallError,
    IpValidationError,
    RuleLockTimeoutError,
)
from app.core.dbdirect.firewall import (
    FirewallManager,
    FirewallSynchronizer,
    build_firewall_manager,
    get_firewall_manager_class,
)
from app.core.dbdirect.manager import AllowlistManager
from app.core.dbdirect.resolver import (
    DbdirectOwner,
    effective_ips,
    resolve_owner,
    rule_identifier,
)
from app.core.dbdirect.store import AllowlistStore
from app.core.dbdirect.validator import IpPolicy, validate_ips

__all__ = [
    "AllowlistManager",
    "AllowlistStore",
    "DbdirectError",
    "DbdirectOwner",
    "FirewallError",
    "FirewallManager",
    "FirewallSynchronizer",
    "IpPolicy",
    "IpValidationError",
    "RuleLockTimeoutError",
    "build_firewall_manager",
    "effective_ips",
    "get_firewall_manager_class",
    "resolve_owner",
    "rule_identifier",
    "validate_ips",
]
