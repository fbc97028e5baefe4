"""Tests for TailnetOrchestrator plan and apply."""

import hashlib
import json

import pytest
from pydantic import SecretStr
from tailpolicy.clients.base import PermanentHTTPError
from tailpolicy.orchestration import TailnetOrchestrator
from tailpolicy.specs.models import (
    AccessRuleSpec,
    DnsOptions,
    KeyOptions,
    PolicySource,
    TailnetOptions,
)
from tailpolicy.tailnet.keys import IssuedKey


class FakeTailnet:
    """Records every control plane call in order."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def _record(self, name, *args):
        if name == self.fail_on:
            raise PermanentHTTPError(f"{name} rejected", status_code=400)
        self.calls.append((name, *args))
        return {}

    async def set_acl(self, document):
        return self._record("set_acl", document)

    async def set_dns_preferences(self, magic_dns):
        return self._record("set_dns_preferences", magic_dns)

    async def set_search_paths(self, search_paths):
        return self._record("set_search_paths", search_paths)

    async def set_nameservers(self, nameservers):
        return self._record("set_nameservers", nameservers)

    async def set_split_dns(self, routes):
        return self._record("set_split_dns", routes)

    async def create_key(self, request):
        self._record("create_key", request.name)
        return IssuedKey(
            id=f"id-{request.name}",
            expires="2027-01-17T00:00:00Z",
            secret=SecretStr("tskey-auth-secret"),
        )

    async def update_settings(self, settings):
        return self._record("update_settings", settings)

    async def update_contact(self, contact_type, email):
        return self._record("update_contact", contact_type, email)


def _source(acl_src="tag:server", **tailnet):
    return PolicySource(
        name="home",
        tag_owners={"tag:server": ["autogroup:admin"]},
        acls=[AccessRuleSpec("accept", [acl_src], ["tag:server:*"])],
        tailnet=TailnetOptions(**tailnet),
    )


class TestPlan:
    """Tests for TailnetOrchestrator.plan."""

    def test_plan_resources(self):
        plan = TailnetOrchestrator(
            _source(
                dns=DnsOptions(search_paths=["corp.example.com"]),
                keys=KeyOptions(create_reusable_key=True, tags=["tag:server"]),
                contacts={"security": "sec@example.com"},
            )
        ).plan()

        assert plan.success
        assert set(plan.resources) == {"acl", "dns", "keys", "settings", "contacts"}
        assert plan.resources["acl"][0]["sha256"] == hashlib.sha256(plan.document).hexdigest()
        assert [c["kind"] for c in plan.resources["dns"]] == ["preferences", "search_paths"]
        assert plan.resources["keys"][0]["expirySeconds"] == 7776000
        assert plan.total_resources == 6

    def test_invalid_policy_plan_fails(self):
        plan = TailnetOrchestrator(_source(acl_src="tag:unknown")).plan()

        assert not plan.success
        assert plan.document is None
        assert "acl" not in plan.resources
        assert "UnknownIdentifier(tag:unknown)" in plan.errors[0]

    def test_catalog_error_is_reported(self):
        source = _source()
        source.hosts = {"nas": "999.999.999.999"}
        plan = TailnetOrchestrator(source).plan()

        assert not plan.success
        assert "999.999.999.999" in plan.errors[0]

    def test_bad_nameserver_is_reported(self):
        plan = TailnetOrchestrator(_source(dns=DnsOptions(nameservers=["dns.example"]))).plan()
        assert not plan.success
        assert plan.errors[0].startswith("DNS:")

    def test_unknown_key_tag_warns(self):
        plan = TailnetOrchestrator(
            _source(keys=KeyOptions(create_reusable_key=True, tags=["tag:ghost"]))
        ).plan()

        assert plan.success
        assert "Auth key tag 'tag:ghost' has no tagOwners entry" in plan.warnings

    def test_to_dict_is_json_serializable(self):
        plan = TailnetOrchestrator(_source()).plan()
        data = json.loads(json.dumps(plan.to_dict()))
        assert data["policy"] == "home"
        assert data["success"] is True

    def test_plan_records_tailnet(self):
        plan = TailnetOrchestrator(_source(), tailnet="example.com").plan()
        assert plan.tailnet == "example.com"
        assert plan.to_dict()["tailnet"] == "example.com"


class TestApply:
    """Tests for TailnetOrchestrator.apply."""

    @pytest.mark.asyncio
    async def test_apply_order_and_outputs(self):
        client = FakeTailnet()
        orchestrator = TailnetOrchestrator(
            _source(
                dns=DnsOptions(search_paths=["corp.example.com"]),
                keys=KeyOptions(create_reusable_key=True),
                contacts={"security": "sec@example.com"},
            ),
            tailnet="example.com",
        )

        result = await orchestrator.apply(client)

        assert result.success
        assert [c[0] for c in client.calls] == [
            "set_acl",
            "set_dns_preferences",
            "set_search_paths",
            "create_key",
            "update_settings",
            "update_contact",
        ]
        published = client.calls[0][1]
        assert result.outputs == {
            "aclId": hashlib.sha256(published).hexdigest(),
            "magicDnsEnabled": True,
            "dnsSearchPaths": ["corp.example.com"],
            "reusableAuthKeyId": "id-server-auth-key",
            "reusableAuthKeyExpiry": "2027-01-17T00:00:00Z",
            "tailnetSettingsId": "example.com",
        }
        assert result.applied == {"acl": 1, "dns": 2, "keys": 1, "settings": 2}

    @pytest.mark.asyncio
    async def test_invalid_policy_publishes_nothing(self):
        client = FakeTailnet()
        result = await TailnetOrchestrator(_source(acl_src="tag:unknown")).apply(client)

        assert not result.success
        assert client.calls == []
        assert result.applied == {}

    @pytest.mark.asyncio
    async def test_dry_run_calls_nothing(self):
        client = FakeTailnet()
        result = await TailnetOrchestrator(_source()).apply(client, dry_run=True)

        assert result.success
        assert result.dry_run
        assert client.calls == []
        assert "aclId" in result.outputs

    @pytest.mark.asyncio
    async def test_apply_stops_at_first_failure(self):
        client = FakeTailnet(fail_on="set_dns_preferences")
        result = await TailnetOrchestrator(
            _source(keys=KeyOptions(create_reusable_key=True))
        ).apply(client)

        assert not result.success
        assert [c[0] for c in client.calls] == ["set_acl"]
        assert result.applied == {"acl": 1}
        assert "Dns failed" in result.errors[0]

    @pytest.mark.asyncio
    async def test_key_secret_not_rendered(self):
        client = FakeTailnet()
        result = await TailnetOrchestrator(
            _source(keys=KeyOptions(create_reusable_key=True))
        ).apply(client)

        assert result.issued_keys["server-auth-key"].secret.get_secret_value() == "tskey-auth-secret"
        assert "tskey-auth-secret" not in json.dumps(result.to_dict())
