#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Work session reconstruction.

Pure functions that replay transition events into completed work
intervals. No file I/O here.
"""

from typing import Dict, Iterable, List, Optional

try:
    from tomatolog.models import LEGACY_PROJECT_NAME, STATE_WORK, CompletedWorkSession, TransitionEvent
except ImportError:
    from models import LEGACY_PROJECT_NAME, STATE_WORK, CompletedWorkSession, TransitionEvent


def normalize_project_name(value: Optional[str]) -> str:
    """Trimmed project name, or the legacy label when absent or blank."""
    if value is None:
        return LEGACY_PROJECT_NAME
    value = value.strip()
    return value or LEGACY_PROJECT_NAME


def reconstruct_sessions(transitions: Iterable[TransitionEvent]) -> List[CompletedWorkSession]:
    """
    Pair "entered work" and "left work" transitions into sessions.

    Events are replayed in timestamp order (ties keep input order). Each
    project tracks at most one open work start: entering work again
    replaces it, and leaving work closes it. A close without an open start,
    or one that is not strictly later than the start, produces nothing.

    Args:
        transitions: Transition events in any order

    Returns:
        Completed sessions ordered by end time
    """
    ordered = sorted(transitions, key=lambda t: t.timestamp)

    active_start: Dict[str, float] = {}
    sessions: List[CompletedWorkSession] = []

    for transition in ordered:
        project = normalize_project_name(transition.project)

        if transition.to_state == STATE_WORK:
            active_start[project] = transition.timestamp

        if transition.from_state == STATE_WORK:
            start = active_start.pop(project, None)
            if start is None or not transition.timestamp > start:
                continue
            sessions.append(
                CompletedWorkSession(start=start, end=transition.timestamp, project=project)
            )

    return sessions
