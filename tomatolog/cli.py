#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
CLI interface for tomatolog.

Usage:
    tomatolog project list|add NAME|select NAME|delete --yes
    tomatolog log appstart
    tomatolog log transition FROM TO [--event NAME] [--project NAME]
    tomatolog stats [--project NAME] [--from YYYY-MM-DD] [--to YYYY-MM-DD] [--json]
    tomatolog filters
    tomatolog config KEY [--type str|bool|int] [--default VALUE]
    tomatolog watch [--project NAME]
"""

import argparse
import sys
from datetime import date, datetime
from typing import List, Optional

# Handle both module import and direct script execution
try:
    from tomatolog._version import __version__
    from tomatolog.commands import dispatch_command
    from tomatolog.manager import TomatoLogManager
except ImportError:
    from _version import __version__
    from commands import dispatch_command
    from manager import TomatoLogManager

# Commands that only read settings and must not touch the state directory
STATELESS_COMMANDS = {"config"}


def parse_date(value: str) -> date:
    """argparse type for YYYY-MM-DD dates."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}' (expected YYYY-MM-DD)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tomatolog",
        description="tomatolog - project-scoped work timer log and statistics",
    )
    parser.add_argument(
        "--version", action="version", version=f"tomatolog {__version__}"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # project command (with subcommands)
    project_parser = subparsers.add_parser("project", help="Manage projects")
    project_subparsers = project_parser.add_subparsers(dest="subcommand", help="Project commands")

    project_subparsers.add_parser("list", help="List projects (* = selected)")

    project_add = project_subparsers.add_parser("add", help="Add a project and select it")
    project_add.add_argument("name", help="Project name")

    project_select = project_subparsers.add_parser("select", help="Select a project")
    project_select.add_argument("name", help="Project name (exact)")

    project_delete = project_subparsers.add_parser(
        "delete", help="Delete the selected project and its history"
    )
    project_delete.add_argument(
        "--yes", action="store_true", help="Confirm permanent deletion of the project's history"
    )

    # log command (with subcommands)
    log_parser = subparsers.add_parser("log", help="Append events to the transition log")
    log_subparsers = log_parser.add_subparsers(dest="subcommand", help="Log commands")

    log_subparsers.add_parser("appstart", help="Record an application start")

    log_transition = log_subparsers.add_parser("transition", help="Record a timer transition")
    log_transition.add_argument("from_state", help="State being left (e.g. idle, work, rest)")
    log_transition.add_argument("to_state", help="State being entered")
    log_transition.add_argument("--event", help="State machine event name")
    log_transition.add_argument(
        "--project", help="Project tag (defaults to the selected project)"
    )

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Show work statistics")
    stats_parser.add_argument("--project", "-p", help="Filter to one project (exact name)")
    stats_parser.add_argument("--from", dest="from_date", type=parse_date, help="First day (YYYY-MM-DD)")
    stats_parser.add_argument("--to", dest="to_date", type=parse_date, help="Last day (YYYY-MM-DD)")
    stats_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # filters command
    subparsers.add_parser("filters", help="List statistics project filter options")

    # config command
    config_parser = subparsers.add_parser("config", help="Read a setting")
    config_parser.add_argument("key", help="Dot-notation key (e.g. tomatolog.debugLevel)")
    config_parser.add_argument("--type", choices=["str", "bool", "int"], default="str")
    config_parser.add_argument("--default", help="Default value if unset")

    # watch command
    watch_parser = subparsers.add_parser("watch", help="Launch the statistics TUI")
    watch_parser.add_argument("--project", "-p", help="Initial project filter")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command in ("project", "log") and not getattr(args, "subcommand", None):
        parser.error(f"{args.command}: a subcommand is required")

    if args.command in STATELESS_COMMANDS:
        return dispatch_command(args, None)

    with TomatoLogManager() as manager:
        return dispatch_command(args, manager)


if __name__ == "__main__":
    sys.exit(main())
