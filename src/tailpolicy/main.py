from __future__ import annotations

import argparse
import sys
from typing import Sequence

from tailpolicy.config import get_settings
from tailpolicy.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tailpolicy",
        description="Compile and apply Tailscale access policies",
    )
    subparsers = parser.add_subparsers(dest="command")

    validate_parser = subparsers.add_parser("validate", help="Validate a policy file")
    validate_parser.add_argument("policy_file", help="Path to policy YAML file")
    validate_parser.add_argument("--env", "--environment", dest="environment",
                                 help="Environment name (dev, staging, prod)")
    validate_parser.add_argument("--strict", action="store_true",
                                 help="Treat warnings as errors")

    compile_parser = subparsers.add_parser("compile", help="Compile a policy file to JSON")
    compile_parser.add_argument("policy_file", help="Path to policy YAML file")
    compile_parser.add_argument("--env", "--environment", dest="environment",
                                help="Environment name (dev, staging, prod)")
    compile_parser.add_argument("-o", "--output", help="Output file (default: stdout)")

    plan_parser = subparsers.add_parser("plan", help="Preview tailnet changes (dry-run)")
    plan_parser.add_argument("policy_file", help="Path to policy YAML file")
    plan_parser.add_argument("--env", "--environment", dest="environment",
                             help="Environment name (dev, staging, prod)")
    plan_parser.add_argument("--output", choices=["text", "json"], default="text",
                             help="Output format")

    apply_parser = subparsers.add_parser("apply", help="Apply policy, DNS, keys and settings")
    apply_parser.add_argument("policy_file", help="Path to policy YAML file")
    apply_parser.add_argument("--env", "--environment", dest="environment",
                              help="Environment name (dev, staging, prod)")
    apply_parser.add_argument("--dry-run", action="store_true",
                              help="Compile and plan without calling the API")
    apply_parser.add_argument("--output", choices=["text", "json"], default="text",
                              help="Output format")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_json)

    if args.command == "validate":
        from tailpolicy.cli.validate import validate_command

        return validate_command(args.policy_file, environment=args.environment, strict=args.strict)

    if args.command == "compile":
        from tailpolicy.cli.compile import compile_command

        return compile_command(args.policy_file, environment=args.environment, output=args.output)

    if args.command == "plan":
        from tailpolicy.cli.plan import plan_command

        return plan_command(args.policy_file, env=args.environment, output_format=args.output)

    if args.command == "apply":
        from tailpolicy.cli.apply import apply_command

        return apply_command(
            args.policy_file,
            env=args.environment,
            dry_run=args.dry_run,
            output_format=args.output,
        )

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
