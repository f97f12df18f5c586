"""
Allowlist input validation.

validate_ips(candidates, policy) -> list[str]

- Payload must be a list (or tuple) of strings; anything else is rejected as a whole.
- Each element is an IPv4/IPv6 address, optionally with /prefix.
- Rejected: malformed, loopback, unspecified, multicast, link-local, anything
  not globally routable (private, shared, reserved), and prefixes broader
  than the policy allows.
- All-or-nothing: one bad element fails the request. Messages are collected
  for every bad element so the caller can report them together.
- Output keeps input order and duplicates; each entry is the canonical text
  of the address (host bits are kept, e.g. 200.20.30.40/24 stays as is).
"""

import ipaddress
from dataclasses import dataclass
from typing import Any

from app.core.config import DbdirectOptions
from app.core.dbdirect.errors import IpValidationError


@dataclass(frozen=True)
class IpPolicy:
    """Narrowest-allowed prefix per address family."""

    ipv4_min_prefix_length: int = 24
    ipv6_min_prefix_length: int = 64

    @classmethod
    def from_options(cls, options: DbdirectOptions) -> "IpPolicy":
        return cls(
            ipv4_min_prefix_length=options.ipv4_min_prefix_length,
            ipv6_min_prefix_length=options.ipv6_min_prefix_length,
        )

    def min_prefix_length(self, version: int) -> int:
        if version == 4:
            return self.ipv4_min_prefix_length
        return self.ipv6_min_prefix_length


DEFAULT_POLICY = IpPolicy()


def _rejection_reason(
    iface: ipaddress.IPv4Interface | ipaddress.IPv6Interface, policy: IpPolicy
) -> str | None:
    addr = iface.ip
    net = iface.network
    if addr.is_unspecified:
        return "unspecified address is not allowed"
    if addr.is_loopback or net.is_loopback:
        return "loopback addresses are not allowed"
    if addr.is_link_local or net.is_link_local:
        return "link-local addresses are not allowed"
    if addr.is_multicast or net.is_multicast:
        return "multicast addresses are not allowed"
    # Anything not globally routable: RFC 1918, shared address space, documentation, reserved.
    if not (addr.is_global and net.is_global):
        return "private or reserved ranges are not allowed"
    min_prefix = policy.min_prefix_length(addr.version)
    if net.prefixlen < min_prefix:
        return f"prefix /{net.prefixlen} is too broad (minimum /{min_prefix})"
    return None


def normalize_ip(value: Any, policy: IpPolicy = DEFAULT_POLICY) -> str:
    """
    Validate one allowlist entry and return its canonical text.
    Raises ValueError with a human-readable reason.
    """
    if not isinstance(value, str):
        raise ValueError(f"Invalid IP {value!r}: must be a string")
    text = value.strip()
    try:
        iface = ipaddress.ip_interface(text)
    except ValueError:
        raise ValueError(
            f"Invalid IP {value!r}: not an IP address or CIDR range"
        ) from None
    reason = _rejection_reason(iface, policy)
    if reason:
        raise ValueError(f"Invalid IP {value!r}: {reason}")
    if "/" in text:
        return str(iface)
    return str(iface.ip)


def validate_ips(candidates: Any, policy: IpPolicy = DEFAULT_POLICY) -> list[str]:
    """
    Validate and normalize an allowlist. Raises IpValidationError listing
    every rejected element; no partial result is ever returned.
    """
    if not isinstance(candidates, list | tuple):
        raise IpValidationError(["IPs must be a list of strings"])

    normalized: list[str] = []
    errors: list[str] = []
    for value in candidates:
        try:
            normalized.append(normalize_ip(value, policy))
        except ValueError as e:
            errors.append(str(e))
    if errors:
        raise IpValidationError(errors)
    return normalized
