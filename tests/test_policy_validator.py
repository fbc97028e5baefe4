"""Tests for policy validation.

Validation is exhaustive: each test checks the kind and location of the
violations reported for one class of problem.
"""

import pytest
from tailpolicy.policy.approvers import AutoApprovalBuilder
from tailpolicy.policy.catalog import Catalog
from tailpolicy.policy.document import PolicyDocument
from tailpolicy.policy.errors import PolicyValidationError, ViolationKind
from tailpolicy.policy.principals import parse_principal
from tailpolicy.policy.rules import RuleSetBuilder
from tailpolicy.policy.validator import PolicyValidator, validate_policy


@pytest.fixture
def catalog():
    catalog = Catalog()
    catalog.register_group("group:ops", ["alice@example.com"])
    catalog.register_tag("tag:server", ["group:ops"])
    catalog.register_tag("tag:exit-node", ["autogroup:admin"])
    catalog.register_host("nas", "100.64.0.10")
    return catalog


def _document(catalog, acls=(), ssh=(), exit_node=(), routes=()):
    rules = RuleSetBuilder()
    for src, dst in acls:
        rules.add_access_rule("accept", src, dst)
    for args in ssh:
        rules.add_shell_rule(*args)
    approvers = AutoApprovalBuilder()
    approvers.grant_exit_node(exit_node)
    for cidr, tags in routes:
        approvers.grant_route(cidr, tags)
    return PolicyDocument.build(catalog, rules, approvers)


def _kinds(result):
    return [(v.kind, v.location) for v in result.violations]


class TestReferences:
    """Tests for reference resolution."""

    def test_valid_document(self, catalog):
        document = _document(
            catalog,
            acls=[(["group:ops"], ["tag:server:22", "nas:445"])],
            exit_node=["tag:exit-node"],
        )
        result = validate_policy(document)
        assert result.valid
        assert result.violations == []

    def test_unknown_tag(self, catalog):
        document = _document(catalog, acls=[(["tag:unknown"], ["tag:server:22"])])
        result = validate_policy(document)

        assert not result.valid
        assert _kinds(result) == [(ViolationKind.UNKNOWN_IDENTIFIER, "acls[0].src[0]")]
        assert result.violations[0].identifier == "tag:unknown"

    def test_unknown_group_and_host(self, catalog):
        document = _document(catalog, acls=[(["group:dev"], ["db:5432"])])
        result = validate_policy(document)
        assert _kinds(result) == [
            (ViolationKind.UNKNOWN_IDENTIFIER, "acls[0].src[0]"),
            (ViolationKind.UNKNOWN_IDENTIFIER, "acls[0].dst[0]"),
        ]

    def test_unknown_host_suggests_prefixed_name(self, catalog):
        document = _document(catalog, acls=[(["*"], ["server:22"])])
        result = validate_policy(document)
        assert "tag:server" in result.violations[0].message

    def test_unknown_autogroup(self, catalog):
        document = _document(catalog, acls=[(["autogroup:everyone"], ["tag:server:22"])])
        result = validate_policy(document)
        assert _kinds(result) == [(ViolationKind.UNKNOWN_IDENTIFIER, "acls[0].src[0]")]

    def test_invalid_address(self, catalog):
        document = _document(catalog, acls=[(["999.999.999.999"], ["tag:server:22"])])
        result = validate_policy(document)
        assert _kinds(result) == [(ViolationKind.INVALID_ADDRESS, "acls[0].src[0]")]

    def test_unowned_tag(self):
        catalog = Catalog()
        catalog.register_tag("tag:orphan", [])
        document = _document(catalog, acls=[(["tag:orphan"], ["tag:orphan:22"])])

        result = validate_policy(document)
        assert _kinds(result) == [
            (ViolationKind.UNOWNED_TAG, "acls[0].src[0]"),
            (ViolationKind.UNOWNED_TAG, "acls[0].dst[0]"),
        ]

    def test_all_violations_reported(self, catalog):
        """Every problem is collected in a single pass."""
        document = _document(
            catalog,
            acls=[(["tag:a"], ["tag:b:22"]), (["tag:c"], ["tag:server:22"])],
            routes=[("10.0.0.0/8", ["tag:d"])],
        )
        result = validate_policy(document)
        identifiers = [v.identifier for v in result.violations]
        assert identifiers == ["tag:a", "tag:b", "tag:c", "tag:d"]

    def test_malformed_user(self, catalog):
        document = _document(catalog, acls=[(["alice@"], ["tag:server:22"])])
        result = validate_policy(document)
        assert _kinds(result) == [(ViolationKind.INVALID_RULE, "acls[0].src[0]")]


class TestCatalogEntries:
    """Tests for tag owners and group members."""

    def test_host_cannot_own_tag(self):
        catalog = Catalog()
        catalog.register_host("nas", "100.64.0.10")
        catalog.register_tag("tag:server", ["nas"])
        result = validate_policy(_document(catalog))

        assert _kinds(result) == [(ViolationKind.INVALID_RULE, "tagOwners[tag:server][0]")]

    def test_admin_marker_owns_tag(self):
        catalog = Catalog()
        catalog.register_tag("tag:server", ["admin"])
        result = validate_policy(
            _document(catalog, acls=[(["tag:server"], ["tag:server:*"])])
        )

        assert result.valid
        assert catalog.owners_of("tag:server") == {parse_principal("admin")}

    def test_unknown_owner_group(self):
        catalog = Catalog()
        catalog.register_tag("tag:server", ["group:missing"])
        result = validate_policy(_document(catalog))

        assert _kinds(result) == [
            (ViolationKind.UNKNOWN_IDENTIFIER, "tagOwners[tag:server][0]")
        ]

    def test_group_member_checked(self):
        catalog = Catalog()
        catalog.register_group("group:ops", ["group:missing"])
        result = validate_policy(_document(catalog))

        assert _kinds(result) == [(ViolationKind.UNKNOWN_IDENTIFIER, "groups[group:ops][0]")]


class TestRuleShape:
    """Tests for access and SSH rule shape."""

    def test_unsupported_action(self, catalog):
        rules = RuleSetBuilder()
        rules.add_access_rule("deny", ["*"], ["tag:server:22"])
        result = validate_policy(PolicyDocument.build(catalog, rules))
        assert _kinds(result) == [(ViolationKind.INVALID_RULE, "acls[0].action")]

    def test_empty_sources_and_destinations(self, catalog):
        document = _document(catalog, acls=[([], [])])
        result = validate_policy(document)
        assert _kinds(result) == [
            (ViolationKind.INVALID_RULE, "acls[0].src"),
            (ViolationKind.INVALID_RULE, "acls[0].dst"),
        ]

    def test_bad_ports(self, catalog):
        document = _document(catalog, acls=[(["*"], ["tag:server:22,*", "tag:server"])])
        result = validate_policy(document)
        assert _kinds(result) == [
            (ViolationKind.INVALID_RULE, "acls[0].dst[0]"),
            (ViolationKind.INVALID_RULE, "acls[0].dst[1]"),
        ]

    def test_ssh_rule_checks(self, catalog):
        document = _document(
            catalog,
            ssh=[
                ("accept", ["group:ops"], ["*"], [], "12h"),
            ],
        )
        result = validate_policy(document)
        assert _kinds(result) == [
            (ViolationKind.INVALID_RULE, "ssh[0].dst[0]"),
            (ViolationKind.INVALID_RULE, "ssh[0].users"),
            (ViolationKind.INVALID_RULE, "ssh[0].checkPeriod"),
        ]

    def test_ssh_check_rule(self, catalog):
        document = _document(
            catalog,
            ssh=[("check", ["group:ops"], ["tag:server"], ["root"], "12h")],
        )
        assert validate_policy(document).valid

    def test_address_cannot_approve_route(self, catalog):
        document = _document(catalog, routes=[("10.0.0.0/8", ["100.64.0.1"])])
        result = validate_policy(document)
        assert _kinds(result) == [
            (ViolationKind.INVALID_RULE, "autoApprovers.routes[10.0.0.0/8][0]")
        ]


class TestLint:
    """Tests for unused-definition warnings."""

    def test_unused_definitions_are_warnings(self, catalog):
        result = validate_policy(_document(catalog, acls=[(["group:ops"], ["*:*"])]))

        assert result.valid
        assert "Tag 'tag:exit-node' is defined but never referenced" in result.warnings
        assert "Host 'nas' is defined but never referenced" in result.warnings

    def test_lint_disabled(self, catalog):
        result = PolicyValidator(lint=False).validate(_document(catalog))
        assert result.warnings == []


class TestValidationResult:
    """Tests for result presentation."""

    def test_raise_for_violations(self, catalog):
        document = _document(catalog, acls=[(["tag:unknown"], ["*:*"])])
        result = validate_policy(document)

        with pytest.raises(PolicyValidationError) as exc_info:
            result.raise_for_violations()
        assert len(exc_info.value.violations) == 1

    def test_str(self, catalog):
        document = _document(catalog, acls=[(["tag:unknown"], ["*:*"])])
        text = str(validate_policy(document))
        assert "Invalid policy (1 violations)" in text
        assert "UnknownIdentifier(tag:unknown) at acls[0].src[0]" in text
