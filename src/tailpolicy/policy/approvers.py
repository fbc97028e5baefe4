"""Builder for route and exit-node auto-approval bindings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from tailpolicy.policy.principals import Principal, parse_cidr, parse_principal
from tailpolicy.policy.rules import Reference


@dataclass(frozen=True)
class AutoApprovers:
    """Immutable view of the auto-approval bindings.

    ``routes`` keeps CIDRs in first-registration order.
    """

    exit_node: tuple[Principal, ...] = ()
    routes: tuple[tuple[str, tuple[Principal, ...]], ...] = field(default_factory=tuple)

    def route(self, cidr: str) -> tuple[Principal, ...] | None:
        for key, approvers in self.routes:
            if key == cidr:
                return approvers
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "exitNode": [p.raw for p in self.exit_node],
            "routes": {cidr: [p.raw for p in approvers] for cidr, approvers in self.routes},
        }


class AutoApprovalBuilder:
    """Collects auto-approval grants.

    Grants are unions: granting the same tag twice is a no-op, and a second
    grant for a CIDR adds its tags to the existing binding.
    """

    def __init__(self) -> None:
        self._exit_node: dict[str, Principal] = {}
        self._routes: dict[str, dict[str, Principal]] = {}

    def grant_exit_node(self, tags: Iterable[str]) -> tuple[Principal, ...]:
        for tag in tags:
            principal = parse_principal(tag)
            self._exit_node.setdefault(principal.raw, principal)
        return tuple(self._exit_node.values())

    def grant_route(self, cidr: str, tags: Iterable[str]) -> str:
        """Bind a route to the tags allowed to self-approve it.

        Returns:
            The canonical CIDR the grant was recorded under.

        Raises:
            InvalidAddress: If ``cidr`` is not a valid network prefix.
        """
        network = str(parse_cidr(cidr))
        binding = self._routes.setdefault(network, {})
        for tag in tags:
            principal = parse_principal(tag)
            binding.setdefault(principal.raw, principal)
        return network

    @property
    def pending_references(self) -> tuple[Reference, ...]:
        references = [
            Reference(p, f"autoApprovers.exitNode[{i}]")
            for i, p in enumerate(self._exit_node.values())
        ]
        for cidr, binding in self._routes.items():
            references.extend(
                Reference(p, f"autoApprovers.routes[{cidr}][{i}]")
                for i, p in enumerate(binding.values())
            )
        return tuple(references)

    def build(self) -> AutoApprovers:
        return AutoApprovers(
            exit_node=tuple(self._exit_node.values()),
            routes=tuple(
                (cidr, tuple(binding.values())) for cidr, binding in self._routes.items()
            ),
        )
