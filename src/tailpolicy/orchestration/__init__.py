"""Tailnet orchestration: plan and apply policy, DNS, keys and settings."""

from tailpolicy.orchestration.engine import PolicyPublisher, TailnetClient, TailnetOrchestrator
from tailpolicy.orchestration.results import ApplyResult, PlanResult, ResultCollector

__all__ = [
    "ApplyResult",
    "PlanResult",
    "PolicyPublisher",
    "ResultCollector",
    "TailnetClient",
    "TailnetOrchestrator",
]
