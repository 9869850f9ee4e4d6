#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""Centralized path resolution for tomatolog.

All path resolution should go through this module to ensure consistency.
"""
import os
from pathlib import Path

LOG_FILE_NAME = "tomatolog.log"
DEFAULTS_FILE_NAME = "defaults.json"
DEBUG_LOG_FILE_NAME = "debug.log"


class PathResolver:
    """Resolves paths for tomatolog components."""

    @staticmethod
    def config_dir() -> Path:
        """Get the configuration directory (settings.json lives here).

        Resolution order:
        1. TOMATOLOG_BASE env var
        2. ~/.config/tomatolog
        """
        base = os.environ.get("TOMATOLOG_BASE")
        if base:
            return Path(base)
        return Path.home() / ".config" / "tomatolog"

    @staticmethod
    def state_dir() -> Path:
        """Get the state directory for mutable data (event log, defaults, debug log).

        Resolution order:
        1. TOMATOLOG_STATE env var
        2. XDG_STATE_HOME/tomatolog
        3. ~/.local/state/tomatolog
        """
        state = os.environ.get("TOMATOLOG_STATE")
        if state:
            return Path(state)
        xdg_state = os.environ.get("XDG_STATE_HOME")
        if xdg_state:
            return Path(xdg_state) / "tomatolog"
        return Path.home() / ".local" / "state" / "tomatolog"

    @classmethod
    def event_log_path(cls) -> Path:
        """Path to the append-only transition log."""
        return cls.state_dir() / LOG_FILE_NAME

    @classmethod
    def defaults_path(cls) -> Path:
        """Path to the persisted key/value state (projects, selection)."""
        return cls.state_dir() / DEFAULTS_FILE_NAME

    @classmethod
    def debug_log_path(cls) -> Path:
        return cls.state_dir() / DEBUG_LOG_FILE_NAME
