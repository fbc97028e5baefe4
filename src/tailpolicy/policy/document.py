"""The policy document aggregate."""

from __future__ import annotations

from dataclasses import dataclass

from tailpolicy.policy.approvers import AutoApprovalBuilder, AutoApprovers
from tailpolicy.policy.catalog import Catalog
from tailpolicy.policy.rules import AccessRule, Reference, RuleSetBuilder, ShellRule


@dataclass(frozen=True)
class PolicyDocument:
    """Everything one compilation pass produces before serialization.

    Building a document seals its catalog, so the document cannot change
    between validation and serialization.
    """

    catalog: Catalog
    access_rules: tuple[AccessRule, ...] = ()
    shell_rules: tuple[ShellRule, ...] = ()
    auto_approvers: AutoApprovers = AutoApprovers()
    references: tuple[Reference, ...] = ()

    @classmethod
    def build(
        cls,
        catalog: Catalog,
        rules: RuleSetBuilder | None = None,
        approvers: AutoApprovalBuilder | None = None,
    ) -> "PolicyDocument":
        rules = rules or RuleSetBuilder()
        approvers = approvers or AutoApprovalBuilder()
        catalog.seal()
        return cls(
            catalog=catalog,
            access_rules=rules.access_rules,
            shell_rules=rules.shell_rules,
            auto_approvers=approvers.build(),
            references=rules.pending_references + approvers.pending_references,
        )
