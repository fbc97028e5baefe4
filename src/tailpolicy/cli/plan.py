"""
CLI command for planning tailnet changes without applying them.
"""

import json
from typing import Optional

from tailpolicy.cli.ux import console, err_console, error, header, print_list, warning
from tailpolicy.config import get_settings
from tailpolicy.orchestration import PlanResult, TailnetOrchestrator
from tailpolicy.specs.parser import PolicyParseError, parse_policy_file


def print_plan_summary(plan: PlanResult) -> None:
    """Print plan summary."""
    console.print()
    header(f"Plan: {plan.policy_name}")
    console.print(f"[info]Tailnet:[/info] {plan.tailnet}")
    console.print()

    if plan.errors:
        error("Errors:")
        for err in plan.errors:
            err_console.print(f"   [error]•[/error] {err}")
        err_console.print()
        return

    console.print("[bold]The following changes will be applied:[/bold]")
    console.print()

    if "acl" in plan.resources:
        acl = plan.resources["acl"][0]
        console.print(f"  [success]✓ ACL[/success]          {acl['size']} bytes")
        console.print(f"     [muted]└[/muted] sha256 {acl['sha256'][:12]}")
        console.print()

    if "dns" in plan.resources:
        changes = plan.resources["dns"]
        console.print(f"  [success]✓ DNS[/success]          {len(changes)} changes")
        for change in changes:
            console.print(f"     [muted]└[/muted] {change['kind']}")
        console.print()

    if "keys" in plan.resources:
        keys = plan.resources["keys"]
        console.print(f"  [success]✓ Auth keys[/success]    {len(keys)} to create")
        for key in keys:
            tags = ", ".join(key["tags"]) or "untagged"
            console.print(f"     [muted]└[/muted] {key['name']} ({tags})")
        console.print()

    if "settings" in plan.resources:
        settings = plan.resources["settings"][0]
        console.print(f"  [success]✓ Settings[/success]     {len(settings)} values")
        console.print()

    if "contacts" in plan.resources:
        contacts = plan.resources["contacts"]
        console.print(f"  [success]✓ Contacts[/success]     {len(contacts)} updates")
        console.print()

    if plan.warnings:
        print_list("Warnings:", plan.warnings, style="warning")

    console.print(f"[bold]Total:[/bold] {plan.total_resources} resources")
    console.print()


def print_plan_json(plan: PlanResult) -> None:
    """Print plan in JSON format."""
    print(json.dumps(plan.to_dict(), indent=2))


def plan_command(
    policy_file: str,
    env: Optional[str] = None,
    output_format: str = "text",
) -> int:
    """
    Preview tailnet changes without applying them.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        source = parse_policy_file(policy_file, environment=env)
    except PolicyParseError as exc:
        if output_format == "json":
            print(json.dumps({"success": False, "errors": [str(exc)]}, indent=2))
        else:
            error(str(exc))
        return 1

    plan = TailnetOrchestrator(source, tailnet=get_settings().tailnet).plan()

    if output_format == "json":
        print_plan_json(plan)
    else:
        print_plan_summary(plan)
        if not plan.success:
            warning("Plan failed, nothing will be applied")

    return 0 if plan.success else 1
