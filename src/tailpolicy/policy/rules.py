"""Builder for ordered access and shell rule lists."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from tailpolicy.policy.principals import (
    Destination,
    Principal,
    parse_destination,
    parse_principal,
)

ACCESS_ACTIONS = {"accept"}
SHELL_ACTIONS = {"accept", "check"}


@dataclass(frozen=True)
class Reference:
    """A principal awaiting resolution, with the field path it came from."""

    principal: Principal
    location: str


@dataclass(frozen=True)
class AccessRule:
    """A network access rule.

    Rendered as ``{"action", "src", "dst"}`` with tokens exactly as written.
    """

    action: str
    sources: tuple[Principal, ...]
    destinations: tuple[Destination, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "src": [p.raw for p in self.sources],
            "dst": [d.raw for d in self.destinations],
        }


@dataclass(frozen=True)
class ShellRule:
    """A Tailscale SSH rule."""

    action: str
    sources: tuple[Principal, ...]
    destinations: tuple[Principal, ...]
    users: tuple[str, ...]
    check_period: str | None = None

    def to_dict(self) -> dict[str, Any]:
        rule: dict[str, Any] = {
            "action": self.action,
            "src": [p.raw for p in self.sources],
            "dst": [p.raw for p in self.destinations],
            "users": list(self.users),
        }
        if self.check_period is not None:
            rule["checkPeriod"] = self.check_period
        return rule


class RuleSetBuilder:
    """Accumulates access and shell rules in declaration order.

    Rules are never reordered, merged or deduplicated: policy evaluators
    downstream may depend on the order they were written in.
    """

    def __init__(self) -> None:
        self._access: list[AccessRule] = []
        self._shell: list[ShellRule] = []
        self._references: list[Reference] = []

    def add_access_rule(
        self,
        action: str,
        sources: Iterable[str],
        destinations: Iterable[str],
    ) -> AccessRule:
        index = len(self._access)
        rule = AccessRule(
            action=str(action).strip(),
            sources=tuple(parse_principal(s) for s in sources),
            destinations=tuple(parse_destination(d) for d in destinations),
        )

        for i, source in enumerate(rule.sources):
            self._references.append(Reference(source, f"acls[{index}].src[{i}]"))
        for i, destination in enumerate(rule.destinations):
            self._references.append(Reference(destination.target, f"acls[{index}].dst[{i}]"))

        self._access.append(rule)
        return rule

    def add_shell_rule(
        self,
        action: str,
        sources: Iterable[str],
        destinations: Iterable[str],
        users: Iterable[str],
        check_period: str | None = None,
    ) -> ShellRule:
        index = len(self._shell)
        rule = ShellRule(
            action=str(action).strip(),
            sources=tuple(parse_principal(s) for s in sources),
            destinations=tuple(parse_principal(d) for d in destinations),
            users=tuple(str(u).strip() for u in users),
            check_period=check_period,
        )

        for i, source in enumerate(rule.sources):
            self._references.append(Reference(source, f"ssh[{index}].src[{i}]"))
        for i, destination in enumerate(rule.destinations):
            self._references.append(Reference(destination, f"ssh[{index}].dst[{i}]"))

        self._shell.append(rule)
        return rule

    @property
    def access_rules(self) -> tuple[AccessRule, ...]:
        return tuple(self._access)

    @property
    def shell_rules(self) -> tuple[ShellRule, ...]:
        return tuple(self._shell)

    @property
    def pending_references(self) -> tuple[Reference, ...]:
        return tuple(self._references)
