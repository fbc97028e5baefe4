"""Tests for the end-to-end compilation pass."""

import json

import pytest
from tailpolicy.policy.compiler import build_document, compile_policy
from tailpolicy.policy.errors import (
    AmbiguousIdentifier,
    DuplicateIdentifier,
    InvalidAddress,
    ViolationKind,
)
from tailpolicy.policy.validator import PolicyValidator
from tailpolicy.specs.models import AccessRuleSpec, PolicySource, RouteGrantSpec, ShellRuleSpec


def _source(**kwargs):
    defaults = {
        "name": "home",
        "tag_owners": {"tag:server": ["autogroup:admin"]},
        "acls": [AccessRuleSpec("accept", ["tag:server"], ["tag:server:*"])],
    }
    defaults.update(kwargs)
    return PolicySource(**defaults)


class TestCompilePolicy:
    """Tests for compile_policy."""

    def test_servers_talk_to_each_other(self):
        result = compile_policy(_source())

        assert result.ok
        policy = json.loads(result.output)
        assert policy["tagOwners"] == {"tag:server": ["autogroup:admin"]}
        assert policy["acls"] == [
            {"action": "accept", "src": ["tag:server"], "dst": ["tag:server:*"]}
        ]
        assert policy["ssh"] == []
        assert policy["autoApprovers"] == {"exitNode": [], "routes": {}}

    def test_tag_owned_by_admin_marker(self):
        source = _source(tag_owners={"tag:server": ["admin"]})
        result = compile_policy(source)

        assert result.ok
        policy = json.loads(result.output)
        assert policy["tagOwners"] == {"tag:server": ["admin"]}
        assert policy["acls"] == [
            {"action": "accept", "src": ["tag:server"], "dst": ["tag:server:*"]}
        ]

    def test_special_markers_in_rules_need_no_catalog(self):
        acls = [AccessRuleSpec("accept", ["admin"], ["self:*"])]
        result = compile_policy(_source(acls=acls + _source().acls))

        assert result.ok
        assert json.loads(result.output)["acls"][0] == {
            "action": "accept",
            "src": ["admin"],
            "dst": ["self:*"],
        }

    def test_unknown_tag_produces_no_output(self):
        source = _source(acls=[AccessRuleSpec("accept", ["tag:unknown"], ["tag:server:*"])])
        result = compile_policy(source)

        assert not result.ok
        assert result.output is None
        assert [(v.kind, v.identifier) for v in result.validation.violations] == [
            (ViolationKind.UNKNOWN_IDENTIFIER, "tag:unknown")
        ]

    def test_route_grants_for_same_cidr_merge(self):
        source = _source(
            tag_owners={"tag:a": ["autogroup:admin"], "tag:b": ["autogroup:admin"]},
            acls=[AccessRuleSpec("accept", ["tag:a", "tag:b"], ["*:*"])],
            route_approvers=[
                RouteGrantSpec("10.0.0.0/8", ["tag:a"]),
                RouteGrantSpec("10.0.0.0/8", ["tag:b"]),
            ],
        )
        result = compile_policy(source)

        policy = json.loads(result.output)
        assert policy["autoApprovers"]["routes"] == {"10.0.0.0/8": ["tag:a", "tag:b"]}

    def test_route_merge_keeps_first_seen_order(self):
        source = _source(
            tag_owners={"tag:server": ["autogroup:admin"], "tag:infra": ["autogroup:admin"]},
            route_approvers=[
                RouteGrantSpec("10.0.0.0/8", ["tag:server"]),
                RouteGrantSpec("10.0.0.0/8", ["tag:infra"]),
            ],
        )
        policy = json.loads(compile_policy(source).output)
        assert policy["autoApprovers"]["routes"]["10.0.0.0/8"] == ["tag:server", "tag:infra"]

    def test_wildcard_and_explicit_ports_pass_through(self):
        acls = [AccessRuleSpec("accept", ["*"], ["tag:server:*", "tag:server:22"])]
        policy = json.loads(compile_policy(_source(acls=acls)).output)
        assert policy["acls"][0]["dst"] == ["tag:server:*", "tag:server:22"]

    def test_invalid_host_address_aborts(self):
        with pytest.raises(InvalidAddress) as exc_info:
            compile_policy(_source(hosts={"nas": "999.999.999.999"}))
        assert exc_info.value.identifier == "999.999.999.999"

    def test_duplicate_and_ambiguous_names_abort(self):
        with pytest.raises(DuplicateIdentifier):
            compile_policy(
                _source(tag_owners={"tag:server": ["autogroup:admin"], "server": []})
            )
        with pytest.raises(AmbiguousIdentifier):
            compile_policy(_source(hosts={"server": "100.64.0.1"}))

    def test_invalid_route_cidr_aborts(self):
        with pytest.raises(InvalidAddress):
            build_document(_source(route_approvers=[RouteGrantSpec("10.0.0.1/8", ["tag:server"])]))

    def test_rule_order_preserved(self):
        acls = [
            AccessRuleSpec("accept", ["tag:server"], ["tag:server:443"]),
            AccessRuleSpec("accept", ["*"], ["tag:server:22"]),
            AccessRuleSpec("accept", ["tag:server"], ["tag:server:443"]),
        ]
        policy = json.loads(compile_policy(_source(acls=acls)).output)
        assert [r["dst"] for r in policy["acls"]] == [
            ["tag:server:443"],
            ["tag:server:22"],
            ["tag:server:443"],
        ]

    def test_compilation_is_deterministic(self):
        source = _source(
            ssh=[ShellRuleSpec("accept", ["autogroup:admin"], ["tag:server"], ["root"])],
            exit_node_approvers=["tag:server"],
        )
        assert compile_policy(source).output == compile_policy(source).output

    def test_each_compilation_uses_a_fresh_catalog(self):
        source = _source()
        first = compile_policy(source)
        second = compile_policy(source)
        assert first.document.catalog is not second.document.catalog

    def test_custom_validator(self):
        result = compile_policy(
            _source(tag_owners={"tag:server": ["autogroup:admin"], "tag:idle": ["autogroup:admin"]}),
            validator=PolicyValidator(lint=False),
        )
        assert result.ok
        assert result.validation.warnings == []
