#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Statistics over reconstructed work sessions.

The module-level functions are pure; StatisticsAggregator adds the
pull-based loading from an EventLog. Every refresh re-reads and replays
the whole log, so cost grows linearly with log size. That is fine for a
local, interactive tool and is deliberately not cached.
"""

import time
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

try:
    from tomatolog.config import get_int_setting
    from tomatolog.debug_logger import get_logger
    from tomatolog.event_log import EventLog
    from tomatolog.models import (
        ALL_PROJECTS_FILTER_ID,
        ALL_PROJECTS_LABEL,
        DEFAULT_STATS_RANGE_DAYS,
        LEGACY_PROJECT_NAME,
        PROJECT_FILTER_PREFIX,
        CompletedWorkSession,
        DateRange,
        StatisticsFilterOption,
        StatisticsResult,
        format_duration,
    )
    from tomatolog.sessions import reconstruct_sessions
except ImportError:
    from config import get_int_setting
    from debug_logger import get_logger
    from event_log import EventLog
    from models import (
        ALL_PROJECTS_FILTER_ID,
        ALL_PROJECTS_LABEL,
        DEFAULT_STATS_RANGE_DAYS,
        LEGACY_PROJECT_NAME,
        PROJECT_FILTER_PREFIX,
        CompletedWorkSession,
        DateRange,
        StatisticsFilterOption,
        StatisticsResult,
        format_duration,
    )
    from sessions import reconstruct_sessions

if TYPE_CHECKING:
    from .projects import ProjectRegistry


def default_date_range() -> DateRange:
    """The last N days through today, N from tomatolog.statsRangeDays."""
    days = get_int_setting("tomatolog.statsRangeDays", DEFAULT_STATS_RANGE_DAYS)
    return DateRange.last_days(days)


def overlap_seconds(session: CompletedWorkSession, lower: float, upper: float) -> float:
    """Seconds of ``session`` inside [lower, upper); 0 when disjoint."""
    start = max(session.start, lower)
    end = min(session.end, upper)
    return max(0.0, end - start)


def filter_sessions(
    sessions: Iterable[CompletedWorkSession],
    project: Optional[str] = None,
) -> List[CompletedWorkSession]:
    """Sessions for exactly ``project``, or all sessions when it is None."""
    if project is None:
        return list(sessions)
    return [s for s in sessions if s.project == project]


def compute_statistics(
    sessions: Iterable[CompletedWorkSession],
    project: Optional[str],
    date_range: DateRange,
) -> StatisticsResult:
    """
    Total in-range work time and number of sessions touching the range.

    Each session is clipped to the normalized range before measuring. A
    session counts as completed in the range only if its clipped part is
    longer than zero.
    """
    lower, upper = date_range.timestamps()
    total = 0.0
    count = 0
    for session in filter_sessions(sessions, project):
        overlap = overlap_seconds(session, lower, upper)
        total += overlap
        if overlap > 0:
            count += 1
    return StatisticsResult(total_seconds=total, completed_count=count)


def totals_by_project(
    sessions: Sequence[CompletedWorkSession],
    date_range: DateRange,
) -> Dict[str, StatisticsResult]:
    """Per-project statistics for projects with time in the range, largest first."""
    projects = sorted({s.project for s in sessions})
    results = {p: compute_statistics(sessions, p, date_range) for p in projects}
    nonzero = {p: r for p, r in results.items() if r.completed_count > 0}
    return dict(sorted(nonzero.items(), key=lambda item: (-item[1].total_seconds, item[0])))


def project_filter_id(project: str) -> str:
    return f"{PROJECT_FILTER_PREFIX}{project}"


def build_filter_options(
    projects: Iterable[str],
    sessions: Iterable[CompletedWorkSession] = (),
    all_projects_label: str = ALL_PROJECTS_LABEL,
) -> List[StatisticsFilterOption]:
    """
    Options for the statistics project picker.

    Order: "all projects", then registry projects in registry order, the
    legacy project, and finally projects that only exist in history
    (deleted or renamed), sorted by name.
    """
    options = [StatisticsFilterOption(id=ALL_PROJECTS_FILTER_ID, title=all_projects_label, project=None)]
    listed = set()

    def add(project: str) -> None:
        if project in listed:
            return
        listed.add(project)
        options.append(StatisticsFilterOption(id=project_filter_id(project), title=project, project=project))

    for project in projects:
        add(project)
    add(LEGACY_PROJECT_NAME)
    for project in sorted({s.project for s in sessions}):
        add(project)

    return options


def resolve_filter(options: Iterable[StatisticsFilterOption], option_id: str) -> Optional[str]:
    """Project for ``option_id``; None for "all projects" or an unknown id."""
    for option in options:
        if option.id == option_id:
            return option.project
    return None


class StatisticsAggregator:
    """
    Loads completed work sessions from the event log and answers queries.

    Attributes:
        event_log: EventLog to read transitions from
        registry: ProjectRegistry supplying current project names (optional)
    """

    def __init__(
        self,
        event_log: EventLog,
        registry: Optional["ProjectRegistry"] = None,
    ) -> None:
        self.event_log = event_log
        self.registry = registry
        self._sessions: List[CompletedWorkSession] = []
        self._loaded = False

    def reload(self) -> List[CompletedWorkSession]:
        """Re-read the log and rebuild the session list."""
        started = time.perf_counter()
        self._sessions = reconstruct_sessions(self.event_log.read_all())
        self._loaded = True
        get_logger().stats_refreshed(len(self._sessions), (time.perf_counter() - started) * 1000)
        return list(self._sessions)

    @property
    def sessions(self) -> List[CompletedWorkSession]:
        """Sessions from the last reload (loading once on first access)."""
        if not self._loaded:
            self.reload()
        return list(self._sessions)

    def query(
        self,
        project: Optional[str] = None,
        date_range: Optional[DateRange] = None,
        refresh: bool = True,
    ) -> StatisticsResult:
        """
        Aggregate work time for one project (or all) over a date range.

        Args:
            project: Exact project name, or None for all projects
            date_range: Days to cover; defaults to default_date_range()
            refresh: Re-read the log first (default True)

        Returns:
            StatisticsResult with total seconds and completed session count
        """
        if refresh:
            self.reload()
        return compute_statistics(self.sessions, project, date_range or default_date_range())

    def filter_options(self) -> List[StatisticsFilterOption]:
        """Picker options from the registry's projects and the loaded history."""
        projects = self.registry.projects if self.registry is not None else ()
        return build_filter_options(projects, self.sessions)

    def format_summary(
        self,
        project: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> str:
        """
        Format a text summary for the terminal.

        Args:
            project: Filter to a specific project (optional)
            date_range: Days to cover; defaults to default_date_range()

        Returns:
            Multi-line string with formatted statistics
        """
        date_range = date_range or default_date_range()
        result = self.query(project=project, date_range=date_range)

        lines = [
            "=== Work Statistics ===",
            f"Project: {project if project is not None else ALL_PROJECTS_LABEL}",
            f"Range: {date_range.first_day.isoformat()} .. {date_range.last_day.isoformat()}",
            "",
            result.format(),
        ]

        if project is None:
            breakdown = totals_by_project(self.sessions, date_range)
            if breakdown:
                lines.append("")
                lines.append("BY PROJECT:")
                for name, stats in breakdown.items():
                    lines.append(
                        f"  {name[:24].ljust(24)} {format_duration(stats.total_seconds):>9}"
                        f"  ({stats.completed_count})"
                    )

        return "\n".join(lines)
