# SPDX-License-Identifier: MIT
"""State for the statistics viewer.

Kept separate from the Textual app so selection and range handling can be
tested without running a UI.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from tomatolog.models import (
    ALL_PROJECTS_FILTER_ID,
    DEFAULT_STATS_RANGE_DAYS,
    DateRange,
    StatisticsFilterOption,
)


def _default_range_start() -> date:
    return date.today() - timedelta(days=DEFAULT_STATS_RANGE_DAYS)


@dataclass
class StatsViewState:
    """Selected project filter and date range of the statistics view."""

    filter_id: str = ALL_PROJECTS_FILTER_ID
    range_start: date = field(default_factory=_default_range_start)
    range_end: date = field(default_factory=date.today)

    @property
    def date_range(self) -> DateRange:
        return DateRange(start=self.range_start, end=self.range_end)

    def normalize_selection(self, options: Iterable[StatisticsFilterOption]) -> bool:
        """Fall back to "all projects" if the selected option disappeared.

        Returns:
            True if the selection was reset
        """
        if any(option.id == self.filter_id for option in options):
            return False
        self.filter_id = ALL_PROJECTS_FILTER_ID
        return True

    def selected_project(self, options: Iterable[StatisticsFilterOption]) -> Optional[str]:
        for option in options:
            if option.id == self.filter_id:
                return option.project
        return None
