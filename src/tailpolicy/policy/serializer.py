"""
Canonical serialization of a validated policy document.

Output is UTF-8 JSON in the control plane's policy schema. Key order and
list order are fixed by construction, so the same document always renders
to the same bytes.
"""

from __future__ import annotations

import json
import math
from typing import Any

from tailpolicy.policy.document import PolicyDocument
from tailpolicy.policy.errors import SerializationError


class PolicySerializer:
    """Renders a ``PolicyDocument`` into the external policy format.

    Args:
        indent: JSON indentation; ``None`` for compact output.
    """

    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent

    def to_dict(self, document: PolicyDocument) -> dict[str, Any]:
        """Build the policy as plain ordered data."""
        catalog = document.catalog
        policy: dict[str, Any] = {}

        if catalog.groups:
            policy["groups"] = {
                group.literal: [m.raw for m in group.members] for group in catalog.groups
            }

        policy["tagOwners"] = {tag.literal: [o.raw for o in tag.owners] for tag in catalog.tags}
        policy["hosts"] = {host.name: host.address for host in catalog.hosts}
        policy["acls"] = [rule.to_dict() for rule in document.access_rules]
        policy["ssh"] = [rule.to_dict() for rule in document.shell_rules]
        policy["autoApprovers"] = document.auto_approvers.to_dict()

        return policy

    def serialize(self, document: PolicyDocument) -> bytes:
        """Encode the document.

        Raises:
            SerializationError: If a value cannot be represented; the error
                names the field path of the first offending value.
        """
        policy = self.to_dict(document)
        _check_representable(policy, "")

        try:
            text = json.dumps(
                policy,
                indent=self.indent,
                ensure_ascii=False,
                allow_nan=False,
                sort_keys=False,
            )
        except (TypeError, ValueError) as exc:
            raise SerializationError("$", f"Policy could not be encoded: {exc}") from exc

        return (text + "\n").encode("utf-8")


def _check_representable(value: Any, path: str) -> None:
    if value is None or isinstance(value, (str, bool, int)):
        return
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise SerializationError(path or "$", f"Non-finite number at {path or '$'}")
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise SerializationError(
                    path or "$", f"Non-string key {key!r} at {path or '$'}"
                )
            _check_representable(item, f"{path}.{key}" if path else key)
        return
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _check_representable(item, f"{path}[{index}]")
        return
    raise SerializationError(
        path or "$",
        f"Value of type {type(value).__name__} at {path or '$'} is not representable",
    )


def serialize_policy(document: PolicyDocument, *, indent: int | None = 2) -> bytes:
    """Serialize a policy document to canonical JSON bytes."""
    return PolicySerializer(indent=indent).serialize(document)
