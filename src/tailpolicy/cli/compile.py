"""
Compile command: write the canonical policy document.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from tailpolicy.cli.ux import err_console, error, print_list, success
from tailpolicy.policy.compiler import compile_policy
from tailpolicy.policy.errors import PolicyError
from tailpolicy.specs.parser import PolicyParseError, parse_policy_file


def compile_command(
    policy_file: str,
    environment: Optional[str] = None,
    output: Optional[str] = None,
) -> int:
    """
    Compile a policy file to JSON.

    Writes to ``output`` when given, otherwise to stdout. Nothing is written
    when the policy is invalid.

    Returns:
        Exit code (0 = compiled, 1 = invalid)
    """
    try:
        source = parse_policy_file(policy_file, environment=environment)
        result = compile_policy(source)
    except (PolicyParseError, PolicyError) as exc:
        error(f"Compilation failed: {exc}")
        return 1

    if not result.ok or result.output is None:
        error(f"Compilation failed: {len(result.validation.violations)} violations")
        err_console.print()
        print_list(
            "Errors:", [str(v) for v in result.validation.violations], target=err_console
        )
        return 1

    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(result.output)
        success(f"Wrote {path} ({len(result.output)} bytes)")
    else:
        sys.stdout.buffer.write(result.output)
        sys.stdout.flush()

    return 0
