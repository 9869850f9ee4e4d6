#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Structured diagnostic logging for tomatolog.

Writes one JSON object per line to ``<state>/debug.log``. This file is for
humans debugging the tool; it is unrelated to the transition log that
statistics are computed from.

Levels:
    0 - off
    1 - info (default): storage errors, project mutations, purges
    2 - debug: statistics refreshes, selection corrections
    3 - trace: every appended event
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

try:
    from tomatolog.config import get_int_setting
    from tomatolog.paths import PathResolver
except ImportError:
    from config import get_int_setting
    from paths import PathResolver

LEVEL_OFF = 0
LEVEL_INFO = 1
LEVEL_DEBUG = 2
LEVEL_TRACE = 3

_LEVEL_NAMES = {LEVEL_INFO: "info", LEVEL_DEBUG: "debug", LEVEL_TRACE: "trace"}


def _resolve_level() -> int:
    """Debug level from TOMATOLOG_DEBUG, then settings.json, then default."""
    env_level = os.environ.get("TOMATOLOG_DEBUG")
    if env_level is not None:
        try:
            return int(env_level)
        except ValueError:
            pass
    return get_int_setting("tomatolog.debugLevel", LEVEL_INFO)


class DebugLogger:
    """Appends structured diagnostic events to the debug log."""

    def __init__(self, log_path: Optional[Path] = None, level: Optional[int] = None) -> None:
        self.log_path = Path(log_path) if log_path else PathResolver.debug_log_path()
        self.level = _resolve_level() if level is None else level
        self._pid = os.getpid()

    def _write(self, event: Dict[str, Any], min_level: int = LEVEL_INFO) -> None:
        """Write a single event if the configured level allows it."""
        if self.level < min_level or self.level <= LEVEL_OFF:
            return

        record = {
            "event": event.get("event", "unknown"),
            "level": event.get("level", _LEVEL_NAMES.get(min_level, "info")),
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "pid": self._pid,
        }
        for key, value in event.items():
            if key not in record:
                record[key] = value

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, sort_keys=True, default=str) + "\n")
        except OSError:
            # Diagnostics are best-effort and must never break the caller
            pass

    # -------------------------------------------------------------------------
    # Event helpers
    # -------------------------------------------------------------------------

    def storage_error(self, op: str, err: Any, path: Optional[Path] = None) -> None:
        event = {"event": "storage_error", "level": "error", "op": op, "err": str(err)}
        if path is not None:
            event["path"] = str(path)
        self._write(event)

    def error(self, op: str, err: Any) -> None:
        self._write({"event": "error", "level": "error", "op": op, "err": str(err)})

    def project_added(self, project: str, project_count: int) -> None:
        self._write({"event": "project_added", "project": project, "project_count": project_count})

    def project_deleted(self, project: str, remaining: int) -> None:
        self._write({"event": "project_deleted", "project": project, "remaining": remaining})

    def events_purged(self, project: str, removed: int, kept: int) -> None:
        self._write({
            "event": "events_purged",
            "project": project,
            "removed": removed,
            "kept": kept,
        })

    def selection_corrected(self, requested: Optional[str], selected: str) -> None:
        self._write(
            {"event": "selection_corrected", "requested": requested, "selected": selected},
            min_level=LEVEL_DEBUG,
        )

    def stats_refreshed(self, session_count: int, duration_ms: float) -> None:
        self._write(
            {
                "event": "stats_refreshed",
                "session_count": session_count,
                "ms": round(duration_ms, 2),
            },
            min_level=LEVEL_DEBUG,
        )

    def event_appended(self, event_type: str, project: Optional[str] = None) -> None:
        event = {"event": "event_appended", "type": event_type}
        if project:
            event["project"] = project
        self._write(event, min_level=LEVEL_TRACE)


_logger: Optional[DebugLogger] = None


def get_logger() -> DebugLogger:
    """Get the process-wide debug logger, creating it on first use."""
    global _logger
    if _logger is None:
        _logger = DebugLogger()
    return _logger


def reset_logger() -> None:
    """Drop the cached logger so the next get_logger() re-reads paths and level."""
    global _logger
    _logger = None
