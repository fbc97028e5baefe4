"""
Policy source parsing.

Parses tailpolicy YAML files (with optional environment overlays) into
``PolicySource`` objects for the compiler.
"""

from tailpolicy.specs.models import PolicySource, TailnetOptions
from tailpolicy.specs.parser import PolicyParseError, parse_policy_data, parse_policy_file

__all__ = [
    "parse_policy_file",
    "parse_policy_data",
    "PolicyParseError",
    "PolicySource",
    "TailnetOptions",
]
