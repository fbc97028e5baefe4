"""Result types for tailnet orchestration."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tailpolicy.tailnet.keys import IssuedKey


@dataclass
class PlanResult:
    """Result of planning a tailnet configuration without applying it."""

    policy_name: str
    environment: Optional[str] = None
    tailnet: str = "-"
    resources: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    document: Optional[bytes] = None

    @property
    def total_resources(self) -> int:
        """Total number of resources that would be applied."""
        return sum(len(items) for items in self.resources.values())

    @property
    def success(self) -> bool:
        """Whether plan succeeded without errors."""
        return len(self.errors) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "policy": self.policy_name,
            "environment": self.environment,
            "tailnet": self.tailnet,
            "success": self.success,
            "total_resources": self.total_resources,
            "resources": self.resources,
            "errors": self.errors,
            "warnings": self.warnings,
        }


@dataclass
class ApplyResult:
    """Result of applying a tailnet configuration."""

    policy_name: str
    dry_run: bool = False
    applied: Dict[str, int] = field(default_factory=dict)
    outputs: Dict[str, Any] = field(default_factory=dict)
    issued_keys: Dict[str, IssuedKey] = field(default_factory=dict)
    duration_seconds: float = 0.0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def total_applied(self) -> int:
        """Total number of resources applied."""
        return sum(self.applied.values())

    @property
    def success(self) -> bool:
        """Whether apply succeeded without errors."""
        return len(self.errors) == 0

    def to_dict(self) -> Dict[str, Any]:
        # Key secrets are never part of the rendered result
        return {
            "policy": self.policy_name,
            "dry_run": self.dry_run,
            "success": self.success,
            "applied": self.applied,
            "outputs": self.outputs,
            "duration_seconds": round(self.duration_seconds, 3),
            "errors": self.errors,
            "warnings": self.warnings,
        }


class ResultCollector:
    """Aggregates step results during apply."""

    def __init__(self, policy_name: str, *, dry_run: bool = False) -> None:
        self._result = ApplyResult(policy_name=policy_name, dry_run=dry_run)

    @property
    def failed(self) -> bool:
        return not self._result.success

    def record(self, resource_type: str, count: int) -> None:
        """Record a successfully applied step."""
        self._result.applied[resource_type] = count

    def record_output(self, name: str, value: Any) -> None:
        self._result.outputs[name] = value

    def record_key(self, name: str, key: IssuedKey) -> None:
        self._result.issued_keys[name] = key

    def record_error(self, display_name: str, error: Exception | str) -> None:
        """Record a step failure."""
        self._result.errors.append(f"{display_name.capitalize()} failed: {error}")

    def record_warnings(self, warnings: List[str]) -> None:
        self._result.warnings.extend(warnings)

    def finalize(self, duration: float) -> ApplyResult:
        """Return the final result with duration set."""
        self._result.duration_seconds = duration
        return self._result
