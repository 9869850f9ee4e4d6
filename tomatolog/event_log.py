#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Append-only transition log.

The log is newline-delimited JSON, one event per line, keys in sorted
order. It is written by exactly one EventLog per process; every operation
on the file goes through that object's lock.

Storage failures are never fatal: a log that cannot be opened turns
append() and remove_events() into no-ops, and an unreadable log reads as
empty. Each failure is reported to the debug log.
"""

import contextlib
import json
import os
import sys
import tempfile
import threading
import time
from pathlib import Path
from types import TracebackType
from typing import BinaryIO, List, Optional, Type

try:
    from tomatolog.debug_logger import get_logger
    from tomatolog.models import (
        AppStartEvent,
        LogEvent,
        TransitionEvent,
        decode_event,
        encode_event,
    )
    from tomatolog.paths import PathResolver
except ImportError:
    from debug_logger import get_logger
    from models import AppStartEvent, LogEvent, TransitionEvent, decode_event, encode_event
    from paths import PathResolver


def get_default_log_path() -> Path:
    """
    Get the default event log path.

    Uses TOMATOLOG_STATE env var if set, otherwise falls back to the XDG
    state directory (~/.local/state/tomatolog/tomatolog.log).
    """
    return PathResolver.event_log_path()


def parse_line(line: str) -> Optional[LogEvent]:
    """
    Parse a single log line into an event.

    Args:
        line: A JSON line from the event log

    Returns:
        The decoded event, or None for blank, malformed or unknown lines
    """
    line = line.strip()
    if not line:
        return None

    try:
        payload = json.loads(line)
    except (ValueError, RecursionError):
        return None

    return decode_event(payload)


def _line_project_key(line: str) -> Optional[str]:
    """Case-folded ``project`` of an arbitrary JSON line, if it has a usable one.

    Schema-free: any JSON object with a non-blank string
    ``project`` qualifies, whatever its other fields look like.
    """
    try:
        payload = json.loads(line)
    except (ValueError, RecursionError):
        return None
    if not isinstance(payload, dict):
        return None
    project = payload.get("project")
    if not isinstance(project, str):
        return None
    project = project.strip()
    return project.casefold() if project else None


class EventLog:
    """
    Owner of the durable transition log.

    The file handle is opened once at construction (creating the file if
    needed) and held until close(). Use as a context manager to scope it.

    Attributes:
        log_path: Path to the log file
    """

    def __init__(self, log_path: Optional[Path] = None) -> None:
        """
        Open (or create) the log.

        Args:
            log_path: Path to the log file. If None, uses the default path.
        """
        self.log_path = Path(log_path) if log_path else get_default_log_path()
        self._lock = threading.RLock()
        self._handle: Optional[BinaryIO] = self._open()

    def _open(self) -> Optional[BinaryIO]:
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            return open(self.log_path, "ab")
        except OSError as e:
            print(f"cannot open log file {self.log_path}: {e}", file=sys.stderr)
            get_logger().storage_error("open", e, self.log_path)
            return None

    @property
    def writable(self) -> bool:
        """False when the log could not be opened; writes are then skipped."""
        return self._handle is not None

    def close(self) -> None:
        """Release the file handle. Later writes become no-ops."""
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    def __enter__(self) -> "EventLog":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def append(self, event: LogEvent) -> bool:
        """
        Append one event and flush it to disk.

        Returns:
            True if the event was written, False if writes are disabled or failed
        """
        with self._lock:
            if self._handle is None:
                return False
            try:
                data = (encode_event(event) + "\n").encode("utf-8")
                self._handle.write(data)
                self._handle.flush()
                os.fsync(self._handle.fileno())
            except (OSError, ValueError) as e:
                get_logger().storage_error("append", e, self.log_path)
                return False

        get_logger().event_appended(event.type, getattr(event, "project", None))
        return True

    def append_app_start(self, timestamp: Optional[float] = None) -> bool:
        """Record an application start."""
        return self.append(AppStartEvent(timestamp=time.time() if timestamp is None else timestamp))

    def append_transition(
        self,
        from_state: str,
        to_state: str,
        project: Optional[str],
        event: Optional[str] = None,
        timestamp: Optional[float] = None,
    ) -> bool:
        """Record a timer transition tagged with ``project``."""
        return self.append(
            TransitionEvent(
                timestamp=time.time() if timestamp is None else timestamp,
                from_state=from_state,
                to_state=to_state,
                project=project,
                event=event,
            )
        )

    def remove_events(self, project: str) -> int:
        """
        Permanently delete every line tagged with ``project``.

        Matching is on the trimmed ``project`` field, case-insensitively.
        Lines without a usable ``project`` field, including lines that are
        not JSON at all, are kept verbatim and in order. The surviving lines
        are written to a temporary file which then replaces the log.

        Args:
            project: Project name whose history is discarded

        Returns:
            Number of lines removed (0 if nothing was rewritten)
        """
        project = (project or "").strip()
        if not project:
            return 0
        target = project.casefold()

        with self._lock:
            if self._handle is None:
                return 0

            try:
                text = self.log_path.read_bytes().decode("utf-8")
            except (OSError, UnicodeDecodeError) as e:
                get_logger().storage_error("purge_read", e, self.log_path)
                return 0

            kept: List[str] = []
            removed = 0
            for line in text.split("\n"):
                if not line:
                    continue
                if _line_project_key(line) == target:
                    removed += 1
                    continue
                kept.append(line)

            output = "\n".join(kept) + "\n" if kept else ""
            try:
                self._replace_contents(output.encode("utf-8"))
            except OSError as e:
                get_logger().storage_error("purge_write", e, self.log_path)
                return 0

        get_logger().events_purged(project, removed, len(kept))
        return removed

    def _replace_contents(self, data: bytes) -> None:
        """Atomically swap the log for ``data`` and reopen the append handle."""
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.log_path.name}.", suffix=".tmp", dir=str(self.log_path.parent)
        )
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.log_path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise

        # The old handle still points at the replaced file
        if self._handle is not None:
            self._handle.close()
        self._handle = self._open()

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def _read_text(self) -> str:
        if not self.log_path.exists():
            return ""
        try:
            return self.log_path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            get_logger().storage_error("read", e, self.log_path)
            return ""

    def read_events(self) -> List[LogEvent]:
        """
        Read every well-formed event of a known type, in file order.

        Returns:
            List of events; empty if the log is missing or unreadable
        """
        with self._lock:
            text = self._read_text()

        events: List[LogEvent] = []
        for line in text.split("\n"):
            event = parse_line(line)
            if event is not None:
                events.append(event)
        return events

    def read_all(self) -> List[TransitionEvent]:
        """
        Read every well-formed transition event, in file order.

        Other event types and malformed lines are skipped.
        """
        return [e for e in self.read_events() if isinstance(e, TransitionEvent)]

    def get_log_size_bytes(self) -> int:
        """Current log size in bytes, or 0 if the file doesn't exist."""
        try:
            return self.log_path.stat().st_size
        except OSError:
            return 0
