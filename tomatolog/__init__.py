# SPDX-License-Identifier: MIT
"""tomatolog - project-scoped work timer log and statistics."""

from tomatolog._version import __version__
from tomatolog.event_log import EventLog
from tomatolog.manager import TomatoLogManager
from tomatolog.models import (
    AddResult,
    AppStartEvent,
    CompletedWorkSession,
    DateRange,
    DeleteResult,
    StatisticsFilterOption,
    StatisticsResult,
    TransitionEvent,
)
from tomatolog.projects import ProjectRegistry
from tomatolog.sessions import reconstruct_sessions
from tomatolog.state_store import KeyValueStore
from tomatolog.stats import StatisticsAggregator

__all__ = [
    "__version__",
    "AddResult",
    "AppStartEvent",
    "CompletedWorkSession",
    "DateRange",
    "DeleteResult",
    "EventLog",
    "KeyValueStore",
    "ProjectRegistry",
    "StatisticsAggregator",
    "StatisticsFilterOption",
    "StatisticsResult",
    "TomatoLogManager",
    "TransitionEvent",
    "reconstruct_sessions",
]
