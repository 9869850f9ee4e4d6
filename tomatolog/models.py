#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Data models for tomatolog.

Contains the log event union and its wire codec, result enums, derived
statistics types, and constants shared by the registry, log and
statistics engine.
"""

import json
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union


# =============================================================================
# Constants
# =============================================================================

DEFAULT_PROJECT_NAME = "Default"
LEGACY_PROJECT_NAME = "Uncategorized"  # Label for transitions logged without a project
RESERVED_PROJECT_NAMES = (LEGACY_PROJECT_NAME,)

# Timer states as written by the timer state machine
STATE_IDLE = "idle"
STATE_WORK = "work"
STATE_REST = "rest"

EVENT_TYPE_APPSTART = "appstart"
EVENT_TYPE_TRANSITION = "transition"

ALL_PROJECTS_FILTER_ID = "__all_projects__"
ALL_PROJECTS_LABEL = "All projects"
PROJECT_FILTER_PREFIX = "project::"

DEFAULT_STATS_RANGE_DAYS = 7


# =============================================================================
# Enums
# =============================================================================


class AddResult(str, Enum):
    """Outcome of ProjectRegistry.add_project()."""
    ADDED = "added"
    EMPTY = "empty"
    DUPLICATE = "duplicate"
    RESERVED = "reserved"
    UNSAVED = "unsaved"  # The updated list could not be written


class DeleteResult(str, Enum):
    """Outcome of ProjectRegistry.delete_selected_project()."""
    DELETED = "deleted"
    LAST_PROJECT = "lastProject"
    NOT_FOUND = "notFound"
    UNSAVED = "unsaved"


# =============================================================================
# Abstract Base Classes
# =============================================================================


class FormattableResult(ABC):
    """Base class for result types that can be formatted for display."""

    @abstractmethod
    def format(self) -> str:
        """Format the result for display.

        Returns:
            Human-readable string representation of the result.
        """
        pass


# =============================================================================
# Log events
# =============================================================================
#
# Events form a tagged union discriminated by ``type``. Each variant is a
# plain frozen dataclass; encoding and decoding dispatch on the discriminant
# through the tables below rather than through inheritance.


@dataclass(frozen=True)
class AppStartEvent:
    """Written once when the application starts."""
    timestamp: float
    type: str = field(default=EVENT_TYPE_APPSTART, init=False)


@dataclass(frozen=True)
class TransitionEvent:
    """A timer state change, optionally tagged with the active project."""
    timestamp: float
    from_state: Optional[str] = None
    to_state: Optional[str] = None
    project: Optional[str] = None  # Absent in records written before projects existed
    event: Optional[str] = None  # State-machine event that caused the change
    type: str = field(default=EVENT_TYPE_TRANSITION, init=False)


LogEvent = Union[AppStartEvent, TransitionEvent]


class EventDecodeError(ValueError):
    """A record does not match the schema of its declared event type."""


def _encode_appstart(event: AppStartEvent) -> Dict[str, Any]:
    return {"timestamp": event.timestamp, "type": event.type}


def _encode_transition(event: TransitionEvent) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"timestamp": event.timestamp, "type": event.type}
    optional = {
        "fromState": event.from_state,
        "toState": event.to_state,
        "project": event.project,
        "event": event.event,
    }
    for key, value in optional.items():
        if value is not None:
            payload[key] = value
    return payload


def _require_timestamp(payload: Dict[str, Any]) -> float:
    value = payload.get("timestamp")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EventDecodeError(f"timestamp must be numeric, got {value!r}")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise EventDecodeError("timestamp must be finite")
    return value


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None or isinstance(value, str):
        return value
    raise EventDecodeError(f"{key} must be a string, got {type(value).__name__}")


def _decode_appstart(payload: Dict[str, Any]) -> AppStartEvent:
    return AppStartEvent(timestamp=_require_timestamp(payload))


def _decode_transition(payload: Dict[str, Any]) -> TransitionEvent:
    return TransitionEvent(
        timestamp=_require_timestamp(payload),
        from_state=_optional_str(payload, "fromState"),
        to_state=_optional_str(payload, "toState"),
        project=_optional_str(payload, "project"),
        event=_optional_str(payload, "event"),
    )


_ENCODERS: Dict[str, Callable[[Any], Dict[str, Any]]] = {
    EVENT_TYPE_APPSTART: _encode_appstart,
    EVENT_TYPE_TRANSITION: _encode_transition,
}

_DECODERS: Dict[str, Callable[[Dict[str, Any]], LogEvent]] = {
    EVENT_TYPE_APPSTART: _decode_appstart,
    EVENT_TYPE_TRANSITION: _decode_transition,
}


def encode_event(event: LogEvent) -> str:
    """Encode an event as a single compact JSON line (no trailing newline).

    Keys are emitted in sorted order and optional fields are omitted when
    absent, so the output is stable for identical events.
    """
    encoder = _ENCODERS.get(event.type)
    if encoder is None:
        raise ValueError(f"Unknown event type: {event.type}")
    return json.dumps(encoder(event), sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def decode_event(payload: Any) -> Optional[LogEvent]:
    """Decode a parsed JSON record into an event.

    Returns:
        The event, or None when the record is not an object, has an unknown
        ``type``, or does not match its variant's schema.
    """
    if not isinstance(payload, dict):
        return None
    decoder = _DECODERS.get(payload.get("type"))
    if decoder is None:
        return None
    try:
        return decoder(payload)
    except EventDecodeError:
        return None


# =============================================================================
# Derived statistics types
# =============================================================================


@dataclass(frozen=True)
class CompletedWorkSession:
    """A reconstructed [start, end) work interval for one project."""
    start: float
    end: float
    project: str

    def __post_init__(self) -> None:
        if not self.end > self.start:
            raise ValueError(f"session end ({self.end}) must be after start ({self.start})")

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class StatisticsFilterOption:
    """One entry of the statistics project picker."""
    id: str
    title: str
    project: Optional[str] = None  # None means all projects


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class DateRange:
    """A user-chosen pair of calendar days, in either order.

    The effective window always covers whole local days, from the start of
    the earlier day up to (but excluding) the start of the day after the
    later one.
    """
    start: date
    end: date

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", _as_date(self.start))
        object.__setattr__(self, "end", _as_date(self.end))

    @classmethod
    def last_days(cls, days: int = DEFAULT_STATS_RANGE_DAYS, today: Optional[date] = None) -> "DateRange":
        """Range from ``days`` days ago through today."""
        today = today or date.today()
        return cls(start=today - timedelta(days=max(0, days)), end=today)

    @property
    def first_day(self) -> date:
        return min(self.start, self.end)

    @property
    def last_day(self) -> date:
        return max(self.start, self.end)

    def bounds(self) -> Tuple[datetime, datetime]:
        """Local-time [start, end) datetimes of the normalized window."""
        lower = datetime.combine(self.first_day, time.min)
        upper = datetime.combine(self.last_day + timedelta(days=1), time.min)
        return lower, upper

    def timestamps(self) -> Tuple[float, float]:
        """The normalized window as seconds since the epoch."""
        lower, upper = self.bounds()
        return lower.timestamp(), upper.timestamp()


@dataclass
class StatisticsResult(FormattableResult):
    """Aggregate work time and completed-session count for a query."""
    total_seconds: float
    completed_count: int

    def format(self) -> str:
        return f"Total: {format_duration(self.total_seconds)} | Completed: {self.completed_count}"

    def to_dict(self) -> Dict[str, Any]:
        return {"totalSeconds": self.total_seconds, "completedCount": self.completed_count}


def format_duration(seconds: float) -> str:
    """Format seconds as hours and zero-padded minutes, e.g. ``1h 05m``."""
    total_minutes = int(max(0.0, seconds) // 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes:02d}m"
