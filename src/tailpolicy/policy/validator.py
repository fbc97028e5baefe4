"""
Policy document validation.

Validation is exhaustive: every violation is collected in one pass so an
author sees all problems from a single compilation attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tailpolicy.policy.catalog import IdentifierKind
from tailpolicy.policy.document import PolicyDocument
from tailpolicy.policy.errors import (
    InvalidAddress,
    PolicyValidationError,
    Violation,
    ViolationKind,
)
from tailpolicy.policy.principals import (
    KNOWN_AUTOGROUPS,
    PrincipalKind,
    parse_address,
)
from tailpolicy.policy.rules import ACCESS_ACTIONS, SHELL_ACTIONS, Reference

# Principals that may own a tag or approve a route
_OWNER_KINDS = {
    PrincipalKind.TAG,
    PrincipalKind.GROUP,
    PrincipalKind.USER,
    PrincipalKind.AUTOGROUP,
    PrincipalKind.SPECIAL,
}


@dataclass
class ValidationResult:
    """Result of policy validation."""

    violations: list[Violation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.violations

    def raise_for_violations(self) -> None:
        if self.violations:
            raise PolicyValidationError(self.violations)

    def __str__(self) -> str:
        lines = []

        if self.valid:
            lines.append("✅ Valid policy")
        else:
            lines.append(f"❌ Invalid policy ({len(self.violations)} violations)")

        if self.violations:
            lines.append("\nViolations:")
            for violation in self.violations:
                lines.append(f"  • {violation}")

        if self.warnings:
            lines.append("\nWarnings:")
            for warning in self.warnings:
                lines.append(f"  ⚠️  {warning}")

        return "\n".join(lines)


class PolicyValidator:
    """Cross-checks a document against its catalog.

    Args:
        lint: Also report unused tags, groups and hosts as warnings.
    """

    def __init__(self, *, lint: bool = True) -> None:
        self.lint = lint

    def validate(self, document: PolicyDocument) -> ValidationResult:
        result = ValidationResult()
        used: set[tuple[PrincipalKind, str]] = set()

        self._check_catalog(document, result, used)

        for reference in document.references:
            self._check_reference(document, reference, result)
            used.add((reference.principal.kind, reference.principal.name))

        self._check_access_rules(document, result)
        self._check_shell_rules(document, result)
        self._check_approvers(document, result)

        if self.lint:
            result.warnings.extend(self._unused_definitions(document, used))

        return result

    # -- references ---------------------------------------------------------

    def _check_reference(
        self,
        document: PolicyDocument,
        reference: Reference,
        result: ValidationResult,
    ) -> None:
        principal = reference.principal
        catalog = document.catalog

        def report(kind: ViolationKind, message: str) -> None:
            result.violations.append(
                Violation(kind, principal.raw, message, reference.location)
            )

        if principal.kind in (PrincipalKind.WILDCARD, PrincipalKind.SPECIAL, PrincipalKind.USER):
            if principal.kind is PrincipalKind.USER and not _valid_login(principal.raw):
                report(ViolationKind.INVALID_RULE, f"Malformed user '{principal.raw}'")
            return

        if principal.kind is PrincipalKind.AUTOGROUP:
            if principal.name not in KNOWN_AUTOGROUPS:
                report(ViolationKind.UNKNOWN_IDENTIFIER, f"Unknown autogroup '{principal.raw}'")
            return

        if principal.kind is PrincipalKind.ADDRESS:
            try:
                parse_address(principal.raw)
            except InvalidAddress as exc:
                report(ViolationKind.INVALID_ADDRESS, exc.message)
            return

        if principal.kind is PrincipalKind.TAG:
            if not catalog.exists(IdentifierKind.TAG, principal.name):
                report(ViolationKind.UNKNOWN_IDENTIFIER, f"Unknown tag '{principal.raw}'")
            elif not catalog.owners_of(principal.name):
                report(
                    ViolationKind.UNOWNED_TAG,
                    f"Tag '{principal.raw}' has no owners and can never be assigned",
                )
            return

        if principal.kind is PrincipalKind.GROUP:
            if not catalog.exists(IdentifierKind.GROUP, principal.name):
                report(ViolationKind.UNKNOWN_IDENTIFIER, f"Unknown group '{principal.raw}'")
            return

        if not catalog.exists(IdentifierKind.HOST, principal.name):
            message = f"Unknown host '{principal.raw}'"
            for kind in (IdentifierKind.TAG, IdentifierKind.GROUP):
                if catalog.exists(kind, principal.name):
                    message += f" (did you mean '{kind.value}:{principal.name}'?)"
            report(ViolationKind.UNKNOWN_IDENTIFIER, message)

    def _check_catalog(
        self,
        document: PolicyDocument,
        result: ValidationResult,
        used: set[tuple[PrincipalKind, str]],
    ) -> None:
        for tag in document.catalog.tags:
            for i, owner in enumerate(tag.owners):
                location = f"tagOwners[{tag.literal}][{i}]"
                if owner.kind not in _OWNER_KINDS:
                    result.violations.append(
                        Violation(
                            ViolationKind.INVALID_RULE,
                            owner.raw,
                            f"'{owner.raw}' cannot own a tag; owners must be users, "
                            "groups, tags, autogroups or admin",
                            location,
                        )
                    )
                    continue
                self._check_reference(document, Reference(owner, location), result)
                used.add((owner.kind, owner.name))

        for group in document.catalog.groups:
            for i, member in enumerate(group.members):
                location = f"groups[{group.literal}][{i}]"
                self._check_reference(document, Reference(member, location), result)
                used.add((member.kind, member.name))

    # -- rule shape ---------------------------------------------------------

    def _check_access_rules(self, document: PolicyDocument, result: ValidationResult) -> None:
        for index, rule in enumerate(document.access_rules):
            location = f"acls[{index}]"
            if rule.action not in ACCESS_ACTIONS:
                result.violations.append(
                    _invalid_rule(
                        rule.action,
                        f"Unsupported access action '{rule.action}'. "
                        f"Must be one of: {', '.join(sorted(ACCESS_ACTIONS))}",
                        f"{location}.action",
                    )
                )
            if not rule.sources:
                result.violations.append(
                    _invalid_rule(location, "Access rule has no sources", f"{location}.src")
                )
            if not rule.destinations:
                result.violations.append(
                    _invalid_rule(location, "Access rule has no destinations", f"{location}.dst")
                )
            for i, destination in enumerate(rule.destinations):
                if destination.port_error:
                    result.violations.append(
                        _invalid_rule(
                            destination.raw,
                            f"Invalid destination ports: {destination.port_error}",
                            f"{location}.dst[{i}]",
                        )
                    )

    def _check_shell_rules(self, document: PolicyDocument, result: ValidationResult) -> None:
        for index, rule in enumerate(document.shell_rules):
            location = f"ssh[{index}]"
            if rule.action not in SHELL_ACTIONS:
                result.violations.append(
                    _invalid_rule(
                        rule.action,
                        f"Unsupported ssh action '{rule.action}'. "
                        f"Must be one of: {', '.join(sorted(SHELL_ACTIONS))}",
                        f"{location}.action",
                    )
                )
            if not rule.sources:
                result.violations.append(
                    _invalid_rule(location, "SSH rule has no sources", f"{location}.src")
                )
            if not rule.destinations:
                result.violations.append(
                    _invalid_rule(location, "SSH rule has no destinations", f"{location}.dst")
                )
            for i, destination in enumerate(rule.destinations):
                if destination.kind is PrincipalKind.WILDCARD:
                    result.violations.append(
                        _invalid_rule(
                            destination.raw,
                            "SSH destinations cannot be '*'",
                            f"{location}.dst[{i}]",
                        )
                    )
            if not rule.users:
                result.violations.append(
                    _invalid_rule(location, "SSH rule has no login users", f"{location}.users")
                )
            for i, user in enumerate(rule.users):
                if not user:
                    result.violations.append(
                        _invalid_rule(user, "Empty login user", f"{location}.users[{i}]")
                    )
            if rule.check_period is not None and rule.action != "check":
                result.violations.append(
                    _invalid_rule(
                        rule.check_period,
                        "checkPeriod is only valid for 'check' rules",
                        f"{location}.checkPeriod",
                    )
                )

    def _check_approvers(self, document: PolicyDocument, result: ValidationResult) -> None:
        for reference in document.references:
            if not reference.location.startswith("autoApprovers"):
                continue
            principal = reference.principal
            if principal.kind not in _OWNER_KINDS:
                result.violations.append(
                    _invalid_rule(
                        principal.raw,
                        f"'{principal.raw}' cannot auto-approve; approvers must be tags, "
                        "groups, users, autogroups or admin",
                        reference.location,
                    )
                )

    # -- lint ---------------------------------------------------------------

    def _unused_definitions(
        self,
        document: PolicyDocument,
        used: set[tuple[PrincipalKind, str]],
    ) -> list[str]:
        warnings = []
        for tag in document.catalog.tags:
            if (PrincipalKind.TAG, tag.name) not in used:
                warnings.append(f"Tag '{tag.literal}' is defined but never referenced")
        for group in document.catalog.groups:
            if (PrincipalKind.GROUP, group.name) not in used:
                warnings.append(f"Group '{group.literal}' is defined but never referenced")
        for host in document.catalog.hosts:
            if (PrincipalKind.HOST, host.name) not in used:
                warnings.append(f"Host '{host.name}' is defined but never referenced")
        return warnings


def _invalid_rule(identifier: str, message: str, location: str) -> Violation:
    return Violation(ViolationKind.INVALID_RULE, identifier, message, location)


def _valid_login(login: str) -> bool:
    local, _, domain = login.partition("@")
    return bool(local) and bool(domain) and "@" not in domain


def validate_policy(document: PolicyDocument, *, lint: bool = True) -> ValidationResult:
    """Validate a policy document."""
    return PolicyValidator(lint=lint).validate(document)

