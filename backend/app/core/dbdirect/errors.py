"""Error taxonomy for the allowlist core."""


class DbdirectError(Exception):
    """Base class for allowlist errors."""

    pass


class IpValidationError(DbdirectError, ValueError):
    """
    Rejected allowlist input. Raised before any side effect.

    `messages` holds one entry per rejected element (or a single entry when the
    payload is not a list); `field` is the request field they refer to.
    """

    field = "ips"

    def __init__(self, messages: list[str]) -> None:
        super().__init__("; ".join(messages))
        self.messages = messages


class FirewallError(DbdirectError):
    """The firewall backend did not accept the rule; the store was not touched."""

    pass


class RuleLockTimeoutError(FirewallError):
    """Another update for the same rule identifier held the lock too long."""

    pass
