"""
CLI command for applying a policy and tailnet configuration.
"""

import asyncio
import json
from typing import Optional

from tailpolicy.cli.ux import console, error, print_list
from tailpolicy.clients.tailscale import TailscaleClient
from tailpolicy.config import get_settings
from tailpolicy.orchestration import ApplyResult, TailnetClient, TailnetOrchestrator
from tailpolicy.specs.parser import PolicyParseError, parse_policy_file

_LABELS = {
    "acl": "ACL",
    "dns": "DNS",
    "keys": "Auth keys",
    "settings": "Settings",
}


def print_apply_summary(result: ApplyResult) -> None:
    """Print apply summary with rich formatting."""
    console.print()

    for resource_type, count in result.applied.items():
        label = _LABELS.get(resource_type, resource_type.title())
        console.print(f"  [green]✓ {label:<12}[/green] {count} applied")

    console.print()
    duration = f" in {result.duration_seconds:.1f}s" if result.duration_seconds > 0 else ""
    if result.dry_run and result.success:
        console.print("[bold cyan]Dry run: nothing applied[/bold cyan]")
    elif result.success:
        console.print(f"[bold green]Applied {result.total_applied} resources{duration}[/bold green]")
    else:
        console.print(
            f"[bold yellow]Applied {result.total_applied} resources "
            f"with errors{duration}[/bold yellow]"
        )

    if result.outputs:
        console.print()
        console.print("[bold]Outputs:[/bold]")
        for key, value in result.outputs.items():
            console.print(f"  [cyan]{key}:[/cyan] {value}")

    if result.warnings:
        console.print()
        print_list("Warnings:", result.warnings, style="warning")

    if result.errors:
        console.print()
        print_list("Errors:", result.errors)

    console.print()


def print_apply_json(result: ApplyResult) -> None:
    """Print apply result in JSON format."""
    print(json.dumps(result.to_dict(), indent=2))


def _default_client() -> TailscaleClient:
    settings = get_settings()
    return TailscaleClient(
        settings.tailscale_api_key,
        settings.tailnet,
        base_url=settings.tailscale_base_url,
        timeout=settings.http_timeout,
        max_retries=settings.http_max_retries,
    )


def apply_command(
    policy_file: str,
    env: Optional[str] = None,
    dry_run: bool = False,
    output_format: str = "text",
    client: Optional[TailnetClient] = None,
) -> int:
    """
    Apply a policy file to the tailnet.

    Args:
        policy_file: Path to policy YAML file
        env: Environment name (dev, staging, prod)
        dry_run: Compile and plan without calling the control plane
        output_format: Output format (text, json)
        client: Control plane client, built from settings when omitted

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        source = parse_policy_file(policy_file, environment=env)
    except PolicyParseError as exc:
        error(str(exc))
        return 1

    settings = get_settings()
    if client is None:
        if not dry_run and settings.tailscale_api_key is None:
            error("TAILPOLICY_TAILSCALE_API_KEY is not set")
            return 1
        client = _default_client()

    orchestrator = TailnetOrchestrator(source, tailnet=settings.tailnet)
    result = asyncio.run(orchestrator.apply(client, dry_run=dry_run))

    if output_format == "json":
        print_apply_json(result)
    else:
        print_apply_summary(result)

    return 0 if result.success else 1
