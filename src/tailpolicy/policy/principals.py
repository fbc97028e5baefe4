"""
Principal references used as rule sources, destinations and owners.

Rule text disambiguates principals by prefix (``tag:``, ``group:``,
``autogroup:``). Tokens are parsed once into a ``Principal`` with an explicit
kind; nothing downstream re-inspects the prefix.
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from tailpolicy.policy.errors import InvalidAddress

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

TAG_PREFIX = "tag:"
GROUP_PREFIX = "group:"
AUTOGROUP_PREFIX = "autogroup:"

WILDCARD = "*"

# Bare markers the control plane resolves itself
SPECIAL_MARKERS = {"admin", "self", "nonroot"}

# Autogroups understood by the control plane
KNOWN_AUTOGROUPS = {
    "admin",
    "auditor",
    "billing-admin",
    "danger-all",
    "internet",
    "it-admin",
    "member",
    "network-admin",
    "nonroot",
    "owner",
    "self",
    "shared",
    "tagged",
}

MIN_PORT = 1
MAX_PORT = 65535

# Digits-and-dots, or anything with a colon made of hex digits, optionally
# followed by a prefix length. Bare host names never match.
_ADDRESS_LIKE = re.compile(
    r"^(?:\d+(?:\.\d+)+|[0-9A-Fa-f]*:[0-9A-Fa-f:.]*)(?:/\d+)?$"
)


class PrincipalKind(str, Enum):
    """Discriminant of a principal reference."""

    WILDCARD = "wildcard"
    SPECIAL = "special"
    AUTOGROUP = "autogroup"
    TAG = "tag"
    GROUP = "group"
    USER = "user"
    ADDRESS = "address"
    HOST = "host"


@dataclass(frozen=True)
class Principal:
    """A parsed principal token.

    ``name`` is the bare identifier (``server`` for ``tag:server``) and
    ``raw`` is the token exactly as it appears in the rendered policy.
    """

    kind: PrincipalKind
    name: str
    raw: str

    @property
    def needs_catalog(self) -> bool:
        """Whether resolving this principal requires a catalog lookup."""
        return self.kind in (PrincipalKind.TAG, PrincipalKind.GROUP, PrincipalKind.HOST)

    def __str__(self) -> str:
        return self.raw


def looks_like_address(token: str) -> bool:
    """Return True if the token is written as an IP address or prefix."""
    return bool(_ADDRESS_LIKE.match(token))


def parse_principal(token: str) -> Principal:
    """Classify a source, destination or owner token.

    Never raises: malformed tokens still get a kind and are reported by the
    validator with their location.
    """
    raw = str(token).strip()

    if raw == WILDCARD:
        return Principal(PrincipalKind.WILDCARD, WILDCARD, raw)
    if raw in SPECIAL_MARKERS:
        return Principal(PrincipalKind.SPECIAL, raw, raw)
    if raw.startswith(AUTOGROUP_PREFIX):
        return Principal(PrincipalKind.AUTOGROUP, raw[len(AUTOGROUP_PREFIX):], raw)
    if raw.startswith(TAG_PREFIX):
        return Principal(PrincipalKind.TAG, raw[len(TAG_PREFIX):], raw)
    if raw.startswith(GROUP_PREFIX):
        return Principal(PrincipalKind.GROUP, raw[len(GROUP_PREFIX):], raw)
    if "@" in raw:
        return Principal(PrincipalKind.USER, raw, raw)
    if looks_like_address(raw):
        return Principal(PrincipalKind.ADDRESS, raw, raw)
    return Principal(PrincipalKind.HOST, raw, raw)


def parse_address(value: str) -> IPAddress | IPNetwork:
    """Parse an IPv4/IPv6 address or prefix.

    Raises:
        InvalidAddress: If the value is neither.
    """
    text = str(value).strip()
    try:
        if "/" in text:
            return ipaddress.ip_network(text, strict=False)
        return ipaddress.ip_address(text)
    except ValueError as exc:
        raise InvalidAddress(text, f"Invalid IP address or prefix: '{text}'") from exc


def parse_cidr(value: str) -> IPNetwork:
    """Parse a route CIDR. Host bits must be zero.

    Raises:
        InvalidAddress: If the value is not a network prefix.
    """
    text = str(value).strip()
    try:
        return ipaddress.ip_network(text, strict=True)
    except ValueError as exc:
        raise InvalidAddress(text, f"Invalid route CIDR '{text}': {exc}") from exc


@dataclass(frozen=True)
class PortRange:
    first: int
    last: int

    def __str__(self) -> str:
        if self.first == self.last:
            return str(self.first)
        return f"{self.first}-{self.last}"


def _parse_port(text: str) -> int:
    if not text.isdigit():
        raise ValueError(f"'{text}' is not a port number")
    port = int(text)
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValueError(f"port {port} out of range {MIN_PORT}-{MAX_PORT}")
    return port


def parse_ports(spec: str) -> tuple[PortRange, ...] | None:
    """Parse a destination port specification.

    Returns ``None`` for the ``*`` wildcard, otherwise the listed ranges in
    the order written.

    Raises:
        ValueError: If the specification is malformed. ``*`` is only
            accepted as the whole specification.
    """
    text = spec.strip()
    if text == WILDCARD:
        return None
    if not text:
        raise ValueError("missing port specification")

    ranges: list[PortRange] = []
    for entry in text.split(","):
        entry = entry.strip()
        if WILDCARD in entry:
            raise ValueError(f"wildcard must be the whole port list, got '{text}'")
        if "-" in entry:
            first_text, _, last_text = entry.partition("-")
            first, last = _parse_port(first_text), _parse_port(last_text)
            if first > last:
                raise ValueError(f"port range '{entry}' is reversed")
            ranges.append(PortRange(first, last))
        else:
            port = _parse_port(entry)
            ranges.append(PortRange(port, port))
    return tuple(ranges)


@dataclass(frozen=True)
class Destination:
    """A ``target:ports`` destination entry of an access rule."""

    target: Principal
    ports: str
    raw: str
    port_ranges: tuple[PortRange, ...] | None = None
    port_error: str | None = None

    @property
    def all_ports(self) -> bool:
        return self.port_error is None and self.port_ranges is None


def parse_destination(token: str) -> Destination:
    """Split a destination into its target principal and port specification.

    The port list follows the last colon. Prefixed targets without a port
    (``tag:server``) and bare targets without a colon are kept with a
    ``port_error`` so the validator can report them.
    """
    raw = str(token).strip()
    head, sep, ports = raw.rpartition(":")

    if not sep or not head or f"{head}:" in (TAG_PREFIX, GROUP_PREFIX, AUTOGROUP_PREFIX):
        return Destination(
            target=parse_principal(raw),
            ports="",
            raw=raw,
            port_error=f"destination '{raw}' has no port specification",
        )

    if head.startswith("[") and head.endswith("]"):
        head = head[1:-1]

    target = parse_principal(head)
    try:
        port_ranges = parse_ports(ports)
    except ValueError as exc:
        return Destination(target=target, ports=ports, raw=raw, port_error=str(exc))
    return Destination(target=target, ports=ports, raw=raw, port_ranges=port_ranges)
