"""
Error types for policy compilation.

Catalog registration raises immediately. Validator findings are collected as
``Violation`` records and only surface together through
``PolicyValidationError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ViolationKind(str, Enum):
    """Kinds of problems the compiler can report."""

    DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
    AMBIGUOUS_IDENTIFIER = "AmbiguousIdentifier"
    INVALID_IDENTIFIER = "InvalidIdentifier"
    INVALID_ADDRESS = "InvalidAddress"
    UNKNOWN_IDENTIFIER = "UnknownIdentifier"
    UNOWNED_TAG = "UnownedTag"
    INVALID_RULE = "InvalidRule"
    SERIALIZATION_ERROR = "SerializationError"


@dataclass(frozen=True)
class Violation:
    """A single validation finding.

    ``identifier`` is the offending token as written by the author and
    ``location`` the field path it was found at (``acls[2].dst[0]``).
    """

    kind: ViolationKind
    identifier: str
    message: str
    location: str | None = None

    def __str__(self) -> str:
        where = f" at {self.location}" if self.location else ""
        return f"{self.kind.value}({self.identifier}){where}: {self.message}"


class PolicyError(Exception):
    """Base class for every policy compilation error."""

    kind: ViolationKind | None = None

    def __init__(
        self,
        identifier: str,
        message: str | None = None,
        *,
        location: str | None = None,
    ) -> None:
        self.identifier = identifier
        self.message = message or identifier
        self.location = location
        super().__init__(self._format())

    def _format(self) -> str:
        where = f" at {self.location}" if self.location else ""
        return f"{self.message}{where}"

    def to_violation(self) -> Violation:
        return Violation(
            kind=self.kind or ViolationKind.INVALID_RULE,
            identifier=self.identifier,
            message=self.message,
            location=self.location,
        )


class DuplicateIdentifier(PolicyError):
    kind = ViolationKind.DUPLICATE_IDENTIFIER


class AmbiguousIdentifier(PolicyError):
    kind = ViolationKind.AMBIGUOUS_IDENTIFIER


class InvalidIdentifier(PolicyError, ValueError):
    kind = ViolationKind.INVALID_IDENTIFIER


class InvalidAddress(PolicyError, ValueError):
    kind = ViolationKind.INVALID_ADDRESS


class UnknownIdentifier(PolicyError, KeyError):
    kind = ViolationKind.UNKNOWN_IDENTIFIER

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self._format()


class UnownedTag(PolicyError):
    kind = ViolationKind.UNOWNED_TAG


class InvalidRule(PolicyError, ValueError):
    kind = ViolationKind.INVALID_RULE


class SerializationError(PolicyError):
    """Raised when the encoder cannot represent a value.

    ``identifier`` holds the field path of the offending value.
    """

    kind = ViolationKind.SERIALIZATION_ERROR


class CatalogSealedError(RuntimeError):
    """Raised when registering into a catalog already owned by a document."""


class PolicyValidationError(Exception):
    """Aggregate failure carrying every violation found in one pass."""

    def __init__(self, violations: list[Violation]) -> None:
        self.violations = list(violations)
        count = len(self.violations)
        summary = "; ".join(str(v) for v in self.violations[:3])
        if count > 3:
            summary += f"; ... and {count - 3} more"
        super().__init__(f"Policy has {count} violation(s): {summary}")
