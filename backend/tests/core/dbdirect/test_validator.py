"""Unit tests for allowlist input validation."""

import pytest

from app.core.dbdirect.errors import IpValidationError
from app.core.dbdirect.validator import IpPolicy, normalize_ip, validate_ips


def test_validate_single_ip() -> None:
    assert validate_ips(["100.20.30.40"]) == ["100.20.30.40"]


def test_validate_keeps_order_and_cidr_text() -> None:
    """Order is preserved and host bits are not masked away."""
    ips = ["100.20.30.40", "200.20.30.40/24", "8.8.8.0/24"]
    assert validate_ips(ips) == ips


def test_validate_keeps_duplicates() -> None:
    assert validate_ips(["11.21.31.41", "11.21.31.41"]) == ["11.21.31.41", "11.21.31.41"]


def test_validate_empty_list() -> None:
    assert validate_ips([]) == []


def test_validate_accepts_tuple() -> None:
    assert validate_ips(("11.21.31.41",)) == ["11.21.31.41"]


def test_validate_canonicalizes_text() -> None:
    """Surrounding whitespace is dropped; IPv6 is compressed and lowercased."""
    assert validate_ips([" 11.21.31.41 "]) == ["11.21.31.41"]
    assert validate_ips(["2606:4700:0000:0000::1111"]) == ["2606:4700::1111"]
    assert validate_ips(["2606:4700:ABCD::/64"]) == ["2606:4700:abcd::/64"]


def test_validate_netmask_notation_becomes_prefix() -> None:
    assert validate_ips(["8.8.8.0/255.255.255.0"]) == ["8.8.8.0/24"]


@pytest.mark.parametrize(
    "value",
    [
        "0.0.0.0",
        "10.20.30.40",
        "127.0.0.1",
        "192.168.1.1",
        "172.16.5.4",
        "100.64.1.1",
        "100.127.255.254/32",
        "192.0.2.10",
        "240.1.2.3",
        "169.254.10.10",
        "224.0.0.1",
        "120.120.120.120/20",
        "100.100.100.300",
        "8.8.8.8/33",
        "not-an-ip",
        "",
        "::1",
        "::",
        "fe80::1",
        "fd00::1",
        "2001:db8::1",
    ],
)
def test_validate_rejects_invalid_entries(value: str) -> None:
    with pytest.raises(IpValidationError) as exc_info:
        validate_ips([value])
    assert exc_info.value.field == "ips"
    assert len(exc_info.value.messages) == 1
    assert repr(value) in exc_info.value.messages[0]


@pytest.mark.parametrize("value", [11223344, 1.5, True, None, ["8.8.8.8"], {"ip": "8.8.8.8"}])
def test_validate_rejects_non_string_entries(value: object) -> None:
    with pytest.raises(IpValidationError) as exc_info:
        validate_ips([value])
    assert "must be a string" in exc_info.value.messages[0]


@pytest.mark.parametrize("payload", ["100.20.30.40", 11223344, None, {"ips": ["8.8.8.8"]}])
def test_validate_rejects_non_list_payload(payload: object) -> None:
    with pytest.raises(IpValidationError) as exc_info:
        validate_ips(payload)
    assert exc_info.value.messages == ["IPs must be a list of strings"]


def test_validate_is_all_or_nothing_and_reports_every_bad_entry() -> None:
    with pytest.raises(IpValidationError) as exc_info:
        validate_ips(["100.20.30.40", "10.0.0.1", "8.8.8.8", "bogus"])
    messages = exc_info.value.messages
    assert len(messages) == 2
    assert "'10.0.0.1'" in messages[0]
    assert "'bogus'" in messages[1]


def test_validate_rejection_reasons() -> None:
    with pytest.raises(ValueError, match="unspecified"):
        normalize_ip("0.0.0.0")
    with pytest.raises(ValueError, match="loopback"):
        normalize_ip("127.0.0.1")
    with pytest.raises(ValueError, match="private or reserved"):
        normalize_ip("10.20.30.40")
    # Shared address space (carrier-grade NAT) is not routable either.
    with pytest.raises(ValueError, match="private or reserved"):
        normalize_ip("100.64.1.1")
    with pytest.raises(ValueError, match="too broad"):
        normalize_ip("120.120.120.120/20")
    with pytest.raises(ValueError, match="not an IP address"):
        normalize_ip("100.100.100.300")


def test_prefix_policy_is_configurable() -> None:
    """Minimum prefix comes from policy, per address family."""
    wide = IpPolicy(ipv4_min_prefix_length=16, ipv6_min_prefix_length=48)
    assert validate_ips(["120.120.120.120/20"], wide) == ["120.120.120.120/20"]
    assert validate_ips(["2606:4700::/48"], wide) == ["2606:4700::/48"]

    narrow = IpPolicy(ipv4_min_prefix_length=32)
    with pytest.raises(IpValidationError):
        validate_ips(["8.8.8.0/24"], narrow)
    assert validate_ips(["8.8.8.8"], narrow) == ["8.8.8.8"]


def test_prefix_policy_boundary() -> None:
    policy = IpPolicy(ipv4_min_prefix_length=24)
    assert validate_ips(["8.8.8.0/24"], policy) == ["8.8.8.0/24"]
    with pytest.raises(IpValidationError):
        validate_ips(["8.8.8.0/23"], policy)


def test_policy_from_options() -> None:
    from app.core.config import DbdirectOptions

    policy = IpPolicy.from_options(
        DbdirectOptions(ipv4_min_prefix_length=20, ipv6_min_prefix_length=56)
    )
    assert policy.min_prefix_length(4) == 20
    assert policy.min_prefix_length(6) == 56
