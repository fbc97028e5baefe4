"""Plan and apply a complete tailnet configuration."""

from __future__ import annotations

import hashlib
import time
from typing import Any, Dict, List, Optional, Protocol

import structlog

from tailpolicy.logging import bind_context
from tailpolicy.orchestration.results import ApplyResult, PlanResult, ResultCollector
from tailpolicy.policy.compiler import CompilationResult, compile_policy
from tailpolicy.policy.errors import PolicyError
from tailpolicy.policy.validator import PolicyValidator
from tailpolicy.specs.models import PolicySource
from tailpolicy.tailnet.dns import DnsChange, DnsConfigurator, apply_dns, plan_dns
from tailpolicy.tailnet.keys import (
    REUSABLE_KEY,
    AuthKeyRequest,
    CredentialIssuer,
    plan_auth_keys,
    unknown_key_tags,
)
from tailpolicy.tailnet.settings import SettingsApplier, plan_contacts, plan_settings

logger = structlog.get_logger()


class PolicyPublisher(Protocol):
    async def set_acl(self, document: bytes) -> Dict[str, Any]:
        ...


class TailnetClient(PolicyPublisher, DnsConfigurator, CredentialIssuer, SettingsApplier, Protocol):
    """Everything ``TailnetOrchestrator.apply`` needs from the control plane."""


class TailnetOrchestrator:
    """Compiles a policy source and applies it with the rest of the tailnet config.

    Apply order is ACL, DNS, keys, settings. Nothing is applied when the
    policy is invalid, and apply stops at the first failed step.
    """

    def __init__(
        self,
        source: PolicySource,
        *,
        validator: Optional[PolicyValidator] = None,
        tailnet: str = "-",
    ) -> None:
        self.source = source
        self.tailnet = tailnet
        self._validator = validator or PolicyValidator()
        self._plan: Optional[PlanResult] = None
        self._dns: List[DnsChange] = []
        self._keys: List[AuthKeyRequest] = []

    def compile(self) -> CompilationResult:
        return compile_policy(self.source, validator=self._validator)

    def plan(self) -> PlanResult:
        """Compile the policy and plan DNS, key and settings changes."""
        if self._plan is not None:
            return self._plan

        source = self.source
        result = PlanResult(
            policy_name=source.name,
            environment=source.environment,
            tailnet=self.tailnet,
        )

        try:
            compilation = self.compile()
        except PolicyError as exc:
            result.errors.append(str(exc))
            compilation = None

        if compilation is not None:
            result.warnings.extend(compilation.validation.warnings)
            result.errors.extend(str(v) for v in compilation.validation.violations)

            if compilation.ok and compilation.output is not None:
                result.document = compilation.output
                result.resources["acl"] = [
                    {
                        "name": source.name,
                        "sha256": _acl_id(compilation.output),
                        "size": len(compilation.output),
                    }
                ]

        try:
            self._dns = plan_dns(source.tailnet.dns)
        except ValueError as exc:
            result.errors.append(f"DNS: {exc}")
        else:
            result.resources["dns"] = [{"kind": c.kind, **c.payload} for c in self._dns]

        self._keys = plan_auth_keys(source.tailnet.keys)
        if self._keys:
            result.resources["keys"] = [
                {
                    "name": k.name,
                    "reusable": k.reusable,
                    "ephemeral": k.ephemeral,
                    "preauthorized": k.preauthorized,
                    "expirySeconds": k.expiry_seconds,
                    "tags": list(k.tags),
                }
                for k in self._keys
            ]
            if compilation is not None and compilation.document is not None:
                known = {t.literal for t in compilation.document.catalog.tags}
                for tag in unknown_key_tags(self._keys, known):
                    result.warnings.append(f"Auth key tag '{tag}' has no tagOwners entry")

        result.resources["settings"] = [plan_settings(source.tailnet)]

        contacts = plan_contacts(source.tailnet)
        if contacts:
            result.resources["contacts"] = [
                {"type": kind, "email": email} for kind, email in contacts.items()
            ]

        logger.info(
            "tailnet_planned",
            policy=source.name,
            environment=source.environment,
            resources=result.total_resources,
            errors=len(result.errors),
            warnings=len(result.warnings),
        )
        self._plan = result
        return result

    async def apply(self, client: TailnetClient, dry_run: bool = False) -> ApplyResult:
        """Apply the planned configuration through ``client``."""
        start = time.perf_counter()
        plan = self.plan()
        source = self.source
        collector = ResultCollector(source.name, dry_run=dry_run)
        collector.record_warnings(plan.warnings)

        if not plan.success or plan.document is None:
            for error in plan.errors:
                collector.record_error("plan", error)
            logger.warning("tailnet_apply_skipped", policy=source.name, errors=len(plan.errors))
            return collector.finalize(time.perf_counter() - start)

        if dry_run:
            collector.record_output("aclId", _acl_id(plan.document))
            collector.record_output("magicDnsEnabled", source.tailnet.dns.magic_dns)
            collector.record_output("dnsSearchPaths", list(source.tailnet.dns.search_paths))
            return collector.finalize(time.perf_counter() - start)

        log = bind_context(policy=source.name, tailnet=self.tailnet)
        log.info("tailnet_apply_started")

        await self._step(collector, "acl", self._apply_acl(client, collector, plan.document))
        if not collector.failed:
            await self._step(collector, "dns", self._apply_dns(client, collector))
        if not collector.failed:
            await self._step(collector, "keys", self._apply_keys(client, collector))
        if not collector.failed:
            await self._step(collector, "settings", self._apply_settings(client, collector))

        result = collector.finalize(time.perf_counter() - start)
        if result.success:
            log.info("tailnet_apply_completed", applied=result.applied)
        else:
            log.error("tailnet_apply_failed", errors=result.errors)
        return result

    async def _step(self, collector: ResultCollector, name: str, step) -> None:
        try:
            count = await step
            collector.record(name, count)
        except Exception as exc:
            logger.error("tailnet_step_failed", policy=self.source.name, step=name, error=str(exc))
            collector.record_error(name, exc)

    async def _apply_acl(
        self, client: TailnetClient, collector: ResultCollector, document: bytes
    ) -> int:
        await client.set_acl(document)
        collector.record_output("aclId", _acl_id(document))
        return 1

    async def _apply_dns(self, client: TailnetClient, collector: ResultCollector) -> int:
        await apply_dns(client, self._dns)
        dns = self.source.tailnet.dns
        collector.record_output("magicDnsEnabled", dns.magic_dns)
        collector.record_output("dnsSearchPaths", list(dns.search_paths))
        return len(self._dns)

    async def _apply_keys(self, client: TailnetClient, collector: ResultCollector) -> int:
        for request in self._keys:
            issued = await client.create_key(request)
            collector.record_key(request.name, issued)
            if request.name == REUSABLE_KEY:
                collector.record_output("reusableAuthKeyId", issued.id)
                collector.record_output("reusableAuthKeyExpiry", issued.expires)
        return len(self._keys)

    async def _apply_settings(self, client: TailnetClient, collector: ResultCollector) -> int:
        await client.update_settings(plan_settings(self.source.tailnet))
        contacts = plan_contacts(self.source.tailnet)
        for kind, email in contacts.items():
            await client.update_contact(kind, email)
        collector.record_output("tailnetSettingsId", self.tailnet)
        return 1 + len(contacts)


def _acl_id(document: bytes) -> str:
    return hashlib.sha256(document).hexdigest()
