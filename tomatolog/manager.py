#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
TomatoLogManager - main entry point for tomatolog.

Wires the event log, the project registry and the statistics aggregator
together over one state directory, and tags timer transitions with the
selected project as they are recorded.
"""

from pathlib import Path
from types import TracebackType
from typing import Optional, Type

try:
    from tomatolog.debug_logger import get_logger
    from tomatolog.event_log import EventLog
    from tomatolog.paths import DEFAULTS_FILE_NAME, LOG_FILE_NAME, PathResolver
    from tomatolog.projects import ProjectRegistry
    from tomatolog.state_store import KeyValueStore
    from tomatolog.stats import StatisticsAggregator
except ImportError:
    from debug_logger import get_logger
    from event_log import EventLog
    from paths import DEFAULTS_FILE_NAME, LOG_FILE_NAME, PathResolver
    from projects import ProjectRegistry
    from state_store import KeyValueStore
    from stats import StatisticsAggregator


class TomatoLogManager:
    """
    Facade over the tomatolog core.

    Attributes:
        state_dir: Directory holding the event log and persisted state
        event_log: The process's single EventLog
        projects: ProjectRegistry (purges the event log on delete)
        statistics: StatisticsAggregator reading from event_log
    """

    def __init__(self, state_dir: Optional[Path] = None) -> None:
        """
        Initialize the manager.

        Args:
            state_dir: Override for the state directory (defaults to
                PathResolver.state_dir())
        """
        self.state_dir = Path(state_dir) if state_dir else PathResolver.state_dir()
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            # EventLog and KeyValueStore degrade on their own from here
            get_logger().storage_error("state_dir", e, self.state_dir)

        self.event_log = EventLog(self.state_dir / LOG_FILE_NAME)
        self.store = KeyValueStore(self.state_dir / DEFAULTS_FILE_NAME)
        self.projects = ProjectRegistry(self.store, event_log=self.event_log)
        self.statistics = StatisticsAggregator(self.event_log, self.projects)

    def record_app_start(self, timestamp: Optional[float] = None) -> bool:
        return self.event_log.append_app_start(timestamp)

    def record_transition(
        self,
        from_state: str,
        to_state: str,
        event: Optional[str] = None,
        project: Optional[str] = None,
        timestamp: Optional[float] = None,
    ) -> bool:
        """
        Record a timer transition.

        Args:
            from_state: State being left (e.g. "idle", "work", "rest")
            to_state: State being entered
            event: State-machine event name (optional)
            project: Explicit project tag; defaults to the selected project
            timestamp: Seconds since the epoch; defaults to now

        Returns:
            True if the transition was written
        """
        if project is None:
            project = self.projects.selected_project_for_log
        return self.event_log.append_transition(
            from_state, to_state, project, event=event, timestamp=timestamp
        )

    def close(self) -> None:
        self.event_log.close()

    def __enter__(self) -> "TomatoLogManager":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()
