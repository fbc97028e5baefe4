"""
Policy compilation pass.

    source -> catalog -> rule/approval builders -> document -> validate -> bytes

Output is produced only for a fully valid document. An invalid policy yields
the complete violation list and no bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from tailpolicy.policy.approvers import AutoApprovalBuilder
from tailpolicy.policy.catalog import Catalog
from tailpolicy.policy.document import PolicyDocument
from tailpolicy.policy.rules import RuleSetBuilder
from tailpolicy.policy.serializer import PolicySerializer
from tailpolicy.policy.validator import PolicyValidator, ValidationResult
from tailpolicy.specs.models import PolicySource

logger = structlog.get_logger()


@dataclass
class CompilationResult:
    """Outcome of compiling one policy source."""

    name: str
    validation: ValidationResult = field(default_factory=ValidationResult)
    document: PolicyDocument | None = None
    output: bytes | None = None

    @property
    def ok(self) -> bool:
        return self.validation.valid and self.output is not None


def build_document(source: PolicySource) -> PolicyDocument:
    """Populate a fresh catalog and builders from a source.

    Raises:
        PolicyError: On catalog registration errors or an unparseable route
            CIDR. These abort compilation immediately.
    """
    catalog = Catalog.from_mappings(
        tag_owners=source.tag_owners,
        groups=source.groups,
        hosts=source.hosts,
    )

    rules = RuleSetBuilder()
    for acl in source.acls:
        rules.add_access_rule(acl.action, acl.src, acl.dst)
    for ssh in source.ssh:
        rules.add_shell_rule(ssh.action, ssh.src, ssh.dst, ssh.users, ssh.check_period)

    approvers = AutoApprovalBuilder()
    approvers.grant_exit_node(source.exit_node_approvers)
    for grant in source.route_approvers:
        approvers.grant_route(grant.cidr, grant.approvers)

    return PolicyDocument.build(catalog, rules, approvers)


def compile_policy(
    source: PolicySource,
    *,
    validator: PolicyValidator | None = None,
    serializer: PolicySerializer | None = None,
) -> CompilationResult:
    """Compile a policy source into canonical policy bytes.

    Catalog errors propagate. Validation problems are returned in
    ``result.validation`` with ``result.output`` left as ``None``.
    """
    validator = validator or PolicyValidator()
    serializer = serializer or PolicySerializer()

    document = build_document(source)
    validation = validator.validate(document)
    result = CompilationResult(name=source.name, validation=validation, document=document)

    if not validation.valid:
        logger.warning(
            "policy_invalid",
            policy=source.name,
            environment=source.environment,
            violations=len(validation.violations),
        )
        return result

    result.output = serializer.serialize(document)
    logger.info(
        "policy_compiled",
        policy=source.name,
        environment=source.environment,
        acls=len(document.access_rules),
        ssh=len(document.shell_rules),
        routes=len(document.auto_approvers.routes),
        warnings=len(validation.warnings),
        size=len(result.output),
    )
    return result
