"""
Policy compiler: catalog, rule builders, validation and serialization.
"""

from tailpolicy.policy.approvers import AutoApprovalBuilder, AutoApprovers
from tailpolicy.policy.catalog import Catalog, IdentifierKind
from tailpolicy.policy.compiler import CompilationResult, build_document, compile_policy
from tailpolicy.policy.document import PolicyDocument
from tailpolicy.policy.errors import (
    AmbiguousIdentifier,
    CatalogSealedError,
    DuplicateIdentifier,
    InvalidAddress,
    InvalidIdentifier,
    InvalidRule,
    PolicyError,
    PolicyValidationError,
    SerializationError,
    UnknownIdentifier,
    UnownedTag,
    Violation,
    ViolationKind,
)
from tailpolicy.policy.principals import Principal, PrincipalKind, parse_principal
from tailpolicy.policy.rules import AccessRule, RuleSetBuilder, ShellRule
from tailpolicy.policy.serializer import PolicySerializer, serialize_policy
from tailpolicy.policy.validator import PolicyValidator, ValidationResult, validate_policy

__all__ = [
    "AccessRule",
    "AmbiguousIdentifier",
    "AutoApprovalBuilder",
    "AutoApprovers",
    "Catalog",
    "CatalogSealedError",
    "CompilationResult",
    "DuplicateIdentifier",
    "IdentifierKind",
    "InvalidAddress",
    "InvalidIdentifier",
    "InvalidRule",
    "PolicyDocument",
    "PolicyError",
    "PolicySerializer",
    "PolicyValidationError",
    "PolicyValidator",
    "Principal",
    "PrincipalKind",
    "RuleSetBuilder",
    "SerializationError",
    "ShellRule",
    "UnknownIdentifier",
    "UnownedTag",
    "ValidationResult",
    "Violation",
    "ViolationKind",
    "build_document",
    "compile_policy",
    "parse_principal",
    "serialize_policy",
    "validate_policy",
]
