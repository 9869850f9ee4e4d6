#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Project registry.

Keeps the ordered list of user projects and the selected project, mirrored
to the persisted key/value state. Invariants held after every call:

- the list is never empty
- names are trimmed, non-empty and unique ignoring case
- the selected project is a member of the list
"""

import threading
from typing import Callable, Iterable, List, Optional, Tuple

try:
    from tomatolog.config import get_str_setting
    from tomatolog.debug_logger import get_logger
    from tomatolog.event_log import EventLog
    from tomatolog.models import (
        DEFAULT_PROJECT_NAME,
        RESERVED_PROJECT_NAMES,
        AddResult,
        DeleteResult,
    )
    from tomatolog.state_store import KeyValueStore
except ImportError:
    from config import get_str_setting
    from debug_logger import get_logger
    from event_log import EventLog
    from models import DEFAULT_PROJECT_NAME, RESERVED_PROJECT_NAMES, AddResult, DeleteResult
    from state_store import KeyValueStore

PROJECTS_KEY = "projects"
SELECTED_PROJECT_KEY = "selectedProject"

ChangeCallback = Callable[["ProjectRegistry", str], None]


def normalize_project_list(names: Iterable[str]) -> List[str]:
    """Trim names and drop blanks and case-insensitive repeats, keeping first occurrences."""
    seen = set()
    result = []
    for raw in names:
        name = raw.strip()
        if not name or name.casefold() in seen:
            continue
        seen.add(name.casefold())
        result.append(name)
    return result


def is_reserved_project_name(name: str) -> bool:
    key = name.strip().casefold()
    return any(reserved.casefold() == key for reserved in RESERVED_PROJECT_NAMES)


class ProjectRegistry:
    """
    Ordered, persisted list of projects plus the current selection.

    Deleting a project also purges its history from the event log, when one
    is attached. Observers registered with subscribe() are called after
    every change with the name of the key that changed ("projects" or
    "selectedProject").
    """

    def __init__(
        self,
        store: KeyValueStore,
        event_log: Optional[EventLog] = None,
        default_project_name: Optional[str] = None,
    ) -> None:
        """
        Load and normalize persisted state.

        Args:
            store: Persisted key/value state holding the list and selection
            event_log: Log to purge when a project is deleted (optional)
            default_project_name: Seed project for an empty list. Defaults to
                the tomatolog.defaultProjectName setting, then "Default".
        """
        self._store = store
        self._event_log = event_log
        self.default_project_name = default_project_name or get_str_setting(
            "tomatolog.defaultProjectName", DEFAULT_PROJECT_NAME
        )
        self._lock = threading.RLock()
        self._subscribers: List[ChangeCallback] = []
        self._projects: List[str] = []
        self._selected: str = self.default_project_name
        self._load()

    def _load(self) -> None:
        stored_projects = self._store.get(PROJECTS_KEY)
        projects = normalize_project_list(self._store.get_string_list(PROJECTS_KEY))
        if not projects:
            projects = [self.default_project_name]

        stored_selection = self._store.get(SELECTED_PROJECT_KEY)
        if isinstance(stored_selection, str) and stored_selection in projects:
            selection = stored_selection
        else:
            selection = projects[0]

        # Write back whatever normalization changed so the stored state converges
        if stored_projects != projects:
            self._store.set(PROJECTS_KEY, list(projects))
        if stored_selection != selection:
            self._store.set(SELECTED_PROJECT_KEY, selection)

        self._projects = projects
        self._selected = selection

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def projects(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._projects)

    @property
    def selected_project(self) -> str:
        with self._lock:
            return self._selected

    @selected_project.setter
    def selected_project(self, name: str) -> None:
        self.select_project(name)

    @property
    def selected_project_for_log(self) -> str:
        """The project to tag new transitions with; always a list member."""
        with self._lock:
            if self._selected in self._projects:
                return self._selected
            return self._fallback_selection()

    def _fallback_selection(self) -> str:
        return self._projects[0] if self._projects else self.default_project_name

    def contains(self, name: str) -> bool:
        """True if ``name`` matches a project ignoring case."""
        key = name.strip().casefold()
        with self._lock:
            return any(p.casefold() == key for p in self._projects)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def select_project(self, name: Optional[str]) -> str:
        """
        Select a project by exact name.

        Names that are not in the list are replaced by the first project.
        If the selection cannot be written, a valid current selection is kept.

        Returns:
            The project that is selected afterwards
        """
        with self._lock:
            if name is not None and name in self._projects:
                selection = name
            else:
                selection = self._fallback_selection()
                get_logger().selection_corrected(name, selection)

            if selection == self._selected:
                return selection

            saved = self._store.set(SELECTED_PROJECT_KEY, selection)
            if not saved and self._selected in self._projects:
                return self._selected
            # A stale selection is replaced even when unsaved; the next load
            # falls back the same way
            self._selected = selection
            self._notify(SELECTED_PROJECT_KEY)
            return selection

    def add_project(self, raw_name: str) -> AddResult:
        """
        Append a new project and select it.

        Args:
            raw_name: Requested name; surrounding whitespace is ignored

        Returns:
            AddResult.ADDED on success, otherwise the reason it was rejected.
            UNSAVED means the new list could not be written and nothing changed.
        """
        name = (raw_name or "").strip()
        if not name:
            return AddResult.EMPTY

        with self._lock:
            if self.contains(name):
                return AddResult.DUPLICATE
            if is_reserved_project_name(name):
                return AddResult.RESERVED

            projects = self._projects + [name]
            if not self._store.set(PROJECTS_KEY, list(projects)):
                return AddResult.UNSAVED
            self._projects = projects
            get_logger().project_added(name, len(projects))
            self._notify(PROJECTS_KEY)
            self.select_project(name)

        return AddResult.ADDED

    def delete_selected_project(self) -> DeleteResult:
        """
        Delete the selected project and permanently discard its history.

        The history is removed from the event log, not reassigned to the
        legacy project. The first remaining project becomes selected.

        Returns:
            DeleteResult.DELETED, LAST_PROJECT when only one project is left,
            NOT_FOUND if the selection is somehow not in the list, or UNSAVED if
            the shortened list could not be written (history is left intact)
        """
        with self._lock:
            if len(self._projects) <= 1:
                return DeleteResult.LAST_PROJECT

            target = self._selected
            if target not in self._projects:
                return DeleteResult.NOT_FOUND

            projects = [p for p in self._projects if p != target]
            if not self._store.set(PROJECTS_KEY, list(projects)):
                return DeleteResult.UNSAVED
            if self._event_log is not None:
                self._event_log.remove_events(target)

            self._projects = projects
            get_logger().project_deleted(target, len(projects))
            self._notify(PROJECTS_KEY)

            if self._selected not in self._projects:
                self.select_project(self._fallback_selection())

        return DeleteResult.DELETED

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """
        Register ``callback(registry, key)`` for change notifications.

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, key: str) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self, key)
            except Exception as e:
                get_logger().error("notify", e)
