#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Command pattern implementation for the CLI.

Each command is a class that implements the Command interface:
- execute(args, manager) -> int

Commands are registered in COMMAND_REGISTRY under "<command>" or
"<command>.<subcommand>" and dispatched via dispatch_command().
"""

import json
import sys
from abc import ABC, abstractmethod
from argparse import Namespace
from typing import Any, Dict, Optional, Type

try:
    from tomatolog.models import AddResult, DateRange, DeleteResult
    from tomatolog.stats import default_date_range
except ImportError:
    from models import AddResult, DateRange, DeleteResult
    from stats import default_date_range


class Command(ABC):
    """Abstract base class for all CLI commands.

    Commands receive parsed args and a TomatoLogManager instance.
    """

    @abstractmethod
    def execute(self, args: Namespace, manager: Any) -> int:
        """Execute the command.

        Args:
            args: Parsed command-line arguments
            manager: TomatoLogManager instance (None for commands that need no state)

        Returns:
            Exit code (0 for success, non-zero for errors)
        """
        pass


# =============================================================================
# Project Commands
# =============================================================================


class ProjectListCommand(Command):
    """List projects in registry order, marking the selected one."""

    def execute(self, args: Namespace, manager: Any) -> int:
        selected = manager.projects.selected_project
        for project in manager.projects.projects:
            marker = "*" if project == selected else " "
            print(f"{marker} {project}")
        return 0


ADD_ERRORS = {
    AddResult.EMPTY: "Project name cannot be empty",
    AddResult.DUPLICATE: "A project named '{name}' already exists",
    AddResult.RESERVED: "'{name}' is a reserved project name",
    AddResult.UNSAVED: "Could not save the project list",
}


class ProjectAddCommand(Command):
    """Add a project and select it."""

    def execute(self, args: Namespace, manager: Any) -> int:
        name = args.name.strip()
        result = manager.projects.add_project(args.name)
        if result == AddResult.ADDED:
            print(f"Added project: {name}")
            return 0
        print(f"Error: {ADD_ERRORS[result].format(name=name)}", file=sys.stderr)
        return 1


class ProjectSelectCommand(Command):
    """Select an existing project by exact name."""

    def execute(self, args: Namespace, manager: Any) -> int:
        if args.name not in manager.projects.projects:
            print(f"Error: Unknown project: {args.name}", file=sys.stderr)
            return 1
        selected = manager.projects.select_project(args.name)
        print(f"Selected project: {selected}")
        return 0


class ProjectDeleteCommand(Command):
    """Delete the selected project together with its logged history."""

    def execute(self, args: Namespace, manager: Any) -> int:
        target = manager.projects.selected_project
        if not getattr(args, "yes", False):
            print(
                f"Deleting '{target}' permanently discards all of its logged work history. "
                "Re-run with --yes to confirm.",
                file=sys.stderr,
            )
            return 1

        result = manager.projects.delete_selected_project()
        if result == DeleteResult.DELETED:
            print(f"Deleted project: {target} (selected: {manager.projects.selected_project})")
            return 0
        if result == DeleteResult.LAST_PROJECT:
            print("Error: Cannot delete the only project", file=sys.stderr)
        elif result == DeleteResult.UNSAVED:
            print("Error: Could not save the project list; nothing was deleted", file=sys.stderr)
        else:
            print(f"Error: Project not found: {target}", file=sys.stderr)
        return 1


# =============================================================================
# Log Commands
# =============================================================================


class LogAppStartCommand(Command):
    """Append an appstart event."""

    def execute(self, args: Namespace, manager: Any) -> int:
        if not manager.record_app_start():
            print("Error: event log is not writable", file=sys.stderr)
            return 1
        return 0


class LogTransitionCommand(Command):
    """Append a timer transition tagged with a project."""

    def execute(self, args: Namespace, manager: Any) -> int:
        written = manager.record_transition(
            args.from_state,
            args.to_state,
            event=getattr(args, "event", None),
            project=getattr(args, "project", None),
        )
        if not written:
            print("Error: event log is not writable", file=sys.stderr)
            return 1
        return 0


# =============================================================================
# Statistics Commands
# =============================================================================


def _date_range_from_args(args: Namespace) -> DateRange:
    default = default_date_range()
    start = getattr(args, "from_date", None) or default.start
    end = getattr(args, "to_date", None) or default.end
    return DateRange(start=start, end=end)


class StatsCommand(Command):
    """Print total work time and completed sessions for a project and range."""

    def execute(self, args: Namespace, manager: Any) -> int:
        project: Optional[str] = getattr(args, "project", None)
        date_range = _date_range_from_args(args)

        if getattr(args, "json", False):
            result = manager.statistics.query(project=project, date_range=date_range)
            payload = result.to_dict()
            payload.update({
                "project": project,
                "from": date_range.first_day.isoformat(),
                "to": date_range.last_day.isoformat(),
            })
            print(json.dumps(payload, sort_keys=True))
        else:
            print(manager.statistics.format_summary(project=project, date_range=date_range))
        return 0


class FiltersCommand(Command):
    """Print the statistics filter options as id<TAB>title."""

    def execute(self, args: Namespace, manager: Any) -> int:
        manager.statistics.reload()
        for option in manager.statistics.filter_options():
            print(f"{option.id}\t{option.title}")
        return 0


# =============================================================================
# Misc Commands
# =============================================================================


class ConfigCommand(Command):
    """Read a setting from settings.json (usable from shell scripts)."""

    def execute(self, args: Namespace, manager: Any) -> int:
        try:
            from tomatolog.config import get_bool_setting, get_int_setting, get_setting
        except ImportError:
            from config import get_bool_setting, get_int_setting, get_setting

        if args.type == "bool":
            default_bool = args.default.lower() in ("true", "1", "yes") if args.default else False
            print("true" if get_bool_setting(args.key, default_bool) else "false")
        elif args.type == "int":
            try:
                default_int = int(args.default) if args.default else 0
            except ValueError:
                print(f"Error: invalid integer default: {args.default}", file=sys.stderr)
                return 1
            print(get_int_setting(args.key, default_int))
        else:
            value = get_setting(args.key, args.default if args.default else None)
            print(value if value is not None else "")
        return 0


class WatchCommand(Command):
    """Launch the statistics TUI."""

    def execute(self, args: Namespace, manager: Any) -> int:
        try:
            from tomatolog.tui.app import run_app
        except ImportError as e:
            print(f"Error: TUI requires textual package: {e}", file=sys.stderr)
            print("Install with: pip install textual", file=sys.stderr)
            return 1
        run_app(manager, project_filter=getattr(args, "project", None))
        return 0


# =============================================================================
# Command Registry
# =============================================================================


COMMAND_REGISTRY: Dict[str, Type[Command]] = {
    "project.list": ProjectListCommand,
    "project.add": ProjectAddCommand,
    "project.select": ProjectSelectCommand,
    "project.delete": ProjectDeleteCommand,
    "log.appstart": LogAppStartCommand,
    "log.transition": LogTransitionCommand,
    "stats": StatsCommand,
    "filters": FiltersCommand,
    "config": ConfigCommand,
    "watch": WatchCommand,
}


def command_key(args: Namespace) -> str:
    """Registry key for parsed args: "<command>" or "<command>.<subcommand>"."""
    subcommand = getattr(args, "subcommand", None)
    if subcommand:
        return f"{args.command}.{subcommand}"
    return args.command


# =============================================================================
# Dispatch Function
# =============================================================================


def dispatch_command(args: Namespace, manager: Any) -> int:
    """Dispatch to appropriate command handler.

    Args:
        args: Parsed arguments with 'command' (and optional 'subcommand')
        manager: TomatoLogManager instance

    Returns:
        Exit code (0 for success, 1 for unknown command)
    """
    key = command_key(args)
    if key not in COMMAND_REGISTRY:
        print(f"Unknown command: {key.replace('.', ' ')}", file=sys.stderr)
        return 1

    command = COMMAND_REGISTRY[key]()
    return command.execute(args, manager)
