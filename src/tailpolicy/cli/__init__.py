"""
CLI commands for tailpolicy.
"""

from tailpolicy.cli.apply import apply_command
from tailpolicy.cli.compile import compile_command
from tailpolicy.cli.plan import plan_command
from tailpolicy.cli.validate import validate_command

__all__ = [
    "apply_command",
    "compile_command",
    "plan_command",
    "validate_command",
]
