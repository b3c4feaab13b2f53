"""tfapply command line entry point."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from tfapply.config.settings import get_settings
from tfapply.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tfapply", description="Apply and destroy terraform modules"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: TFAPPLY_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default=None,
        help="Log format (default: TFAPPLY_LOG_FORMAT or json)",
    )
    subparsers = parser.add_subparsers(dest="command")

    apply_parser = subparsers.add_parser(
        "apply", help="Create a module, or update it when already in state"
    )
    destroy_parser = subparsers.add_parser(
        "destroy", help="Destroy a module and remove it from state"
    )
    for sub in (apply_parser, destroy_parser):
        sub.add_argument("resource_yaml", help="Path to resource YAML file")
        sub.add_argument("--config", help="Provider config file (registry, extra files)")

    show_parser = subparsers.add_parser("show", help="Show resources recorded in state")

    for sub in (apply_parser, destroy_parser, show_parser):
        sub.add_argument("--state", help="State file (default: tfapply.state.json)")
        sub.add_argument("--output", choices=["text", "json"], default="text",
                         help="Output format")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(
        args.log_level or settings.log_level,
        json_output=(args.log_format or settings.log_format) == "json",
    )

    if args.command == "apply":
        from tfapply.cli.apply import apply_command
        sys.exit(apply_command(
            resource_yaml=args.resource_yaml,
            state_path=args.state,
            config_path=args.config,
            output_format=args.output,
        ))

    if args.command == "destroy":
        from tfapply.cli.apply import destroy_command
        sys.exit(destroy_command(
            resource_yaml=args.resource_yaml,
            state_path=args.state,
            config_path=args.config,
            output_format=args.output,
        ))

    if args.command == "show":
        from tfapply.cli.apply import show_command
        sys.exit(show_command(state_path=args.state, output_format=args.output))

    parser.print_help()
    sys.exit(2)


if __name__ == "__main__":
    main()
