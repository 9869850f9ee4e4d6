#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Statistics viewer for tomatolog.

Shows total work time and completed work sessions for a chosen project
and date range. Sessions are reloaded from the event log on mount, on
refresh, and whenever the project list changes.
"""

from datetime import datetime
from typing import Callable, List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Footer, Header, Input, Select, Static

from tomatolog.manager import TomatoLogManager
from tomatolog.models import (
    ALL_PROJECTS_FILTER_ID,
    ALL_PROJECTS_LABEL,
    StatisticsFilterOption,
    StatisticsResult,
    format_duration,
)
from tomatolog.projects import PROJECTS_KEY, ProjectRegistry
from tomatolog.stats import default_date_range, project_filter_id
from tomatolog.tui.app_state import StatsViewState

DATE_FORMAT = "%Y-%m-%d"


class StatisticsApp(App):
    """Textual application showing work statistics."""

    TITLE = "tomatolog statistics"
    CSS_PATH = "styles/app.tcss"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
    ]

    def __init__(
        self,
        manager: TomatoLogManager,
        project_filter: Optional[str] = None,
    ) -> None:
        """
        Initialize the app.

        Args:
            manager: TomatoLogManager providing the log, registry and statistics
            project_filter: Project to select initially (optional)
        """
        super().__init__()
        self.manager = manager
        default_range = default_date_range()
        self.state = StatsViewState(range_start=default_range.start, range_end=default_range.end)
        if project_filter:
            self.state.filter_id = project_filter_id(project_filter)
        self.filter_options: List[StatisticsFilterOption] = []
        self.last_result: Optional[StatisticsResult] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def compose(self) -> ComposeResult:
        """Compose the app layout."""
        yield Header()
        with Vertical(id="stats-panel"):
            with Horizontal(classes="row"):
                yield Static("Project", classes="label")
                yield Select(
                    [(ALL_PROJECTS_LABEL, ALL_PROJECTS_FILTER_ID)],
                    value=ALL_PROJECTS_FILTER_ID,
                    allow_blank=False,
                    id="project-filter",
                )
            with Horizontal(classes="row"):
                yield Static("From", classes="label")
                yield Input(
                    value=self.state.range_start.strftime(DATE_FORMAT),
                    placeholder="YYYY-MM-DD",
                    id="range-start",
                )
                yield Static("To", classes="label")
                yield Input(
                    value=self.state.range_end.strftime(DATE_FORMAT),
                    placeholder="YYYY-MM-DD",
                    id="range-end",
                )
            yield Static("", id="total-work", classes="result")
            yield Static("", id="completed-count", classes="result")
            yield Button("Refresh", id="refresh", variant="primary")
        yield Footer()

    def on_mount(self) -> None:
        """Load sessions and start listening for project changes."""
        self._unsubscribe = self.manager.projects.subscribe(self._on_registry_changed)
        self.reload_sessions()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_registry_changed(self, registry: ProjectRegistry, key: str) -> None:
        if key == PROJECTS_KEY:
            self.reload_sessions()

    # -------------------------------------------------------------------------
    # Data
    # -------------------------------------------------------------------------

    def reload_sessions(self) -> None:
        """Re-read the log, rebuild filter options and recompute totals."""
        self.manager.statistics.reload()
        self.filter_options = self.manager.statistics.filter_options()
        self.state.normalize_selection(self.filter_options)

        select = self.query_one("#project-filter", Select)
        select.set_options([(option.title, option.id) for option in self.filter_options])
        select.value = self.state.filter_id

        self._update_totals()

    def _update_totals(self) -> None:
        project = self.state.selected_project(self.filter_options)
        result = self.manager.statistics.query(
            project=project,
            date_range=self.state.date_range,
            refresh=False,
        )
        self.last_result = result

        self.query_one("#total-work", Static).update(
            f"Total work: {format_duration(result.total_seconds)}"
        )
        self.query_one("#completed-count", Static).update(
            f"Completed sessions: {result.completed_count}"
        )
        range_text = (
            f"{self.state.date_range.first_day.isoformat()} .. "
            f"{self.state.date_range.last_day.isoformat()}"
        )
        self.sub_title = f"{project or ALL_PROJECTS_LABEL} | {range_text}"

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != "project-filter" or not isinstance(event.value, str):
            return
        if event.value == self.state.filter_id:
            return
        self.state.filter_id = event.value
        self._update_totals()

    def on_input_changed(self, event: Input.Changed) -> None:
        """Apply a date as soon as it parses; partial input is ignored."""
        try:
            value = datetime.strptime(event.value.strip(), DATE_FORMAT).date()
        except ValueError:
            return

        if event.input.id == "range-start":
            self.state.range_start = value
        elif event.input.id == "range-end":
            self.state.range_end = value
        else:
            return
        self._update_totals()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "refresh":
            self.action_refresh()

    def action_refresh(self) -> None:
        """Manual refresh from the log."""
        self.reload_sessions()
        self.notify("Refreshed")


def run_app(manager: TomatoLogManager, project_filter: Optional[str] = None) -> None:
    """
    Run the TUI application.

    Args:
        manager: TomatoLogManager to read from
        project_filter: Initial project filter (optional)
    """
    app = StatisticsApp(manager, project_filter=project_filter)
    app.run()


if __name__ == "__main__":
    with TomatoLogManager() as _manager:
        run_app(_manager)
