"""
Tailnet DNS configuration.

Turns ``DnsOptions`` into the list of DNS changes to apply:
- MagicDNS preference (always)
- Search paths (when configured)
- Global nameservers (when configured)
- Split DNS routes (when configured)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

from tailpolicy.policy.errors import InvalidAddress
from tailpolicy.policy.principals import parse_address
from tailpolicy.specs.models import DnsOptions

DnsChangeKind = Literal["preferences", "search_paths", "nameservers", "split_dns"]


@dataclass(frozen=True)
class DnsChange:
    kind: DnsChangeKind
    payload: dict[str, Any]


class DnsConfigurator(Protocol):
    """Collaborator that applies DNS configuration to a tailnet."""

    async def set_dns_preferences(self, magic_dns: bool) -> dict[str, Any]:
        ...

    async def set_search_paths(self, search_paths: list[str]) -> dict[str, Any]:
        ...

    async def set_nameservers(self, nameservers: list[str]) -> dict[str, Any]:
        ...

    async def set_split_dns(self, routes: dict[str, list[str]]) -> dict[str, Any]:
        ...


def _check_nameservers(servers: list[str], where: str) -> None:
    for server in servers:
        try:
            parse_address(server)
        except InvalidAddress as exc:
            raise InvalidAddress(server, f"Invalid nameserver '{server}'", location=where) from exc


def plan_dns(options: DnsOptions) -> list[DnsChange]:
    """Plan DNS changes in application order.

    Raises:
        InvalidAddress: If a nameserver is not an IP address.
        ValueError: If a split DNS domain is empty or has no nameservers.
    """
    changes = [DnsChange("preferences", {"magicDNS": options.magic_dns})]

    if options.search_paths:
        changes.append(DnsChange("search_paths", {"searchPaths": list(options.search_paths)}))

    if options.nameservers:
        _check_nameservers(options.nameservers, "tailnet.dns.nameservers")
        changes.append(DnsChange("nameservers", {"dns": list(options.nameservers)}))

    if options.split_dns:
        routes: dict[str, list[str]] = {}
        for domain, servers in options.split_dns.items():
            if not domain.strip():
                raise ValueError("Split DNS domain is required")
            if not servers:
                raise ValueError(f"Split DNS domain '{domain}' has no nameservers")
            _check_nameservers(servers, f"tailnet.dns.splitDns.{domain}")
            routes[domain] = list(servers)
        changes.append(DnsChange("split_dns", routes))

    return changes


async def apply_dns(configurator: DnsConfigurator, changes: list[DnsChange]) -> None:
    """Apply planned DNS changes in order."""
    for change in changes:
        if change.kind == "preferences":
            await configurator.set_dns_preferences(change.payload["magicDNS"])
        elif change.kind == "search_paths":
            await configurator.set_search_paths(change.payload["searchPaths"])
        elif change.kind == "nameservers":
            await configurator.set_nameservers(change.payload["dns"])
        elif change.kind == "split_dns":
            await configurator.set_split_dns(change.payload)
