"""
Validate command.
"""

from __future__ import annotations

from tailpolicy.cli.ux import console, error, header, print_list, success, warning
from tailpolicy.policy.compiler import compile_policy
from tailpolicy.policy.errors import PolicyError
from tailpolicy.specs.parser import PolicyParseError, parse_policy_file


def validate_command(
    policy_file: str,
    environment: str | None = None,
    strict: bool = False,
) -> int:
    """
    Validate a policy file.

    Args:
        policy_file: Path to policy YAML file
        environment: Optional environment name (dev, staging, prod)
        strict: Treat warnings as errors

    Returns:
        Exit code (0 = valid, 1 = invalid)
    """
    header("Validate Policy")
    console.print()

    if environment:
        console.print(f"[info]Environment:[/info] {environment}")
        console.print()

    try:
        source = parse_policy_file(policy_file, environment=environment)
        result = compile_policy(source)
    except (PolicyParseError, PolicyError) as exc:
        error("Invalid policy")
        console.print()
        print_list("Errors:", [str(exc)])
        return 1

    if not result.ok:
        error("Invalid policy")
        console.print()
        print_list("Errors:", [str(v) for v in result.validation.violations])
        return 1

    success("Valid policy")
    console.print()
    document = result.document
    console.print(f"[bold]Policy:[/bold] {source.name}")
    if document is not None:
        console.print(f"[bold]ACL rules:[/bold] {len(document.access_rules)}")
        console.print(f"[bold]SSH rules:[/bold] {len(document.shell_rules)}")
    console.print()

    if result.validation.warnings:
        warning("Warnings:")
        for warn in result.validation.warnings:
            console.print(f"  [warning]•[/warning] {warn}")
        console.print()

        if strict:
            error("Validation failed (strict mode treats warnings as errors)")
            return 1

    return 0
