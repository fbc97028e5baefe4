"""
Auth key requests for automated device onboarding.

Key creation is delegated to a ``CredentialIssuer``. The issued secret is
carried as an opaque ``SecretStr`` and never logged or inspected here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import SecretStr

from tailpolicy.specs.models import KeyOptions

REUSABLE_KEY = "server-auth-key"
EPHEMERAL_KEY = "container-auth-key"
INFRA_KEY = "infra-auth-key"


@dataclass(frozen=True)
class AuthKeyRequest:
    """Parameters of one auth key to create."""

    name: str
    description: str
    reusable: bool
    ephemeral: bool
    preauthorized: bool
    expiry_seconds: int
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Render in the control plane's key creation format."""
        create: dict[str, Any] = {
            "reusable": self.reusable,
            "ephemeral": self.ephemeral,
            "preauthorized": self.preauthorized,
        }
        if self.tags:
            create["tags"] = list(self.tags)
        return {
            "capabilities": {"devices": {"create": create}},
            "expirySeconds": self.expiry_seconds,
            "description": self.description,
        }


@dataclass(frozen=True)
class IssuedKey:
    """Identifier and expiry of an issued key."""

    id: str
    expires: str | None
    secret: SecretStr | None = None


class CredentialIssuer(Protocol):
    """Collaborator that creates auth keys."""

    async def create_key(self, request: AuthKeyRequest) -> IssuedKey:
        ...


def plan_auth_keys(options: KeyOptions) -> list[AuthKeyRequest]:
    """Plan the auth keys enabled by the key flags."""
    requests: list[AuthKeyRequest] = []

    if options.create_reusable_key:
        requests.append(
            AuthKeyRequest(
                name=REUSABLE_KEY,
                description="GitOps managed reusable key for server onboarding",
                reusable=True,
                ephemeral=False,
                preauthorized=True,
                expiry_seconds=options.expiry_seconds,
                tags=tuple(options.tags),
            )
        )

    if options.ephemeral_key:
        # Nodes joined with this key are removed when they disconnect
        requests.append(
            AuthKeyRequest(
                name=EPHEMERAL_KEY,
                description="GitOps managed ephemeral key for containers",
                reusable=True,
                ephemeral=True,
                preauthorized=True,
                expiry_seconds=options.expiry_seconds,
                tags=tuple(options.ephemeral_key_tags),
            )
        )

    if options.infra_key:
        requests.append(
            AuthKeyRequest(
                name=INFRA_KEY,
                description="GitOps managed key for infrastructure devices",
                reusable=True,
                ephemeral=False,
                preauthorized=True,
                expiry_seconds=options.expiry_seconds,
                tags=tuple(options.infra_key_tags),
            )
        )

    return requests


def unknown_key_tags(requests: list[AuthKeyRequest], known_tags: set[str]) -> list[str]:
    """Return key tags that no tagOwners entry declares, in first-seen order."""
    unknown: list[str] = []
    for request in requests:
        for tag in request.tags:
            if tag not in known_tags and tag not in unknown:
                unknown.append(tag)
    return unknown
