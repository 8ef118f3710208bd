"""Persisted board settings: week filter, selected week and view mode."""

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .config import SETTINGS_STORAGE_KEY
from .exceptions import ValidationError
from .filters import WeekFilter, week_info_for_filter
from .local_storage import LocalStorage
from .models import WeekInfo
from .weeks import current_week_info, format_iso_week, next_week, previous_week

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    """Task board view mode."""

    KANBAN = "kanban"
    LIST = "list"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


@dataclass
class FilterState:
    """Week selection and view state of the task board."""

    week_filter: WeekFilter = WeekFilter.THIS_WEEK
    selected_week: WeekInfo = field(default_factory=current_week_info)
    view_mode: ViewMode = ViewMode.KANBAN
    theme: Theme = Theme.SYSTEM

    def set_week_filter(self, week_filter: WeekFilter, today: date | None = None) -> None:
        """Set the week filter and move the selected week to match it."""
        self.week_filter = WeekFilter(week_filter)
        self.selected_week = week_info_for_filter(self.week_filter, today)

    def set_selected_week(self, week: WeekInfo) -> None:
        self.selected_week = week

    def navigate_week(self, direction: str) -> None:
        """
        Move the selected week one week back or forward.

        Args:
            direction: "prev" or "next"

        Raises:
            ValueError: If direction is not recognised
        """
        if direction == "next":
            self.selected_week = next_week(self.selected_week)
        elif direction == "prev":
            self.selected_week = previous_week(self.selected_week)
        else:
            raise ValueError(f"Unknown direction: {direction!r}")

    def go_to_current_week(self, today: date | None = None) -> None:
        self.selected_week = current_week_info(today)
        self.week_filter = WeekFilter.THIS_WEEK

    def toggle_view_mode(self) -> None:
        self.view_mode = (
            ViewMode.LIST if self.view_mode == ViewMode.KANBAN else ViewMode.KANBAN
        )

    def reset(self, today: date | None = None) -> None:
        self.week_filter = WeekFilter.THIS_WEEK
        self.selected_week = current_week_info(today)
        self.view_mode = ViewMode.KANBAN


class SettingsStore:
    """Loads and saves FilterState in local storage."""

    def __init__(self, storage: LocalStorage, key: str = SETTINGS_STORAGE_KEY) -> None:
        self._storage = storage
        self._key = key

    def load(self, today: date | None = None) -> FilterState:
        """
        Load persisted settings.

        The selected week is not restored directly: it is recomputed from the
        week filter, so a fresh session starts relative to the current week.

        Returns:
            FilterState (defaults when nothing is stored)

        Raises:
            ValidationError: If the stored payload is malformed
        """
        state = FilterState(selected_week=current_week_info(today))
        raw = self._storage.get_item(self._key)
        if raw is None:
            return state

        try:
            data = json.loads(raw)
            state.week_filter = WeekFilter(data.get("weekFilter", WeekFilter.THIS_WEEK))
            state.view_mode = ViewMode(data.get("viewMode", ViewMode.KANBAN))
            state.theme = Theme(data.get("theme", Theme.SYSTEM))
        except (AttributeError, ValueError) as e:
            raise ValidationError(f"Invalid stored settings: {e}") from e

        state.selected_week = week_info_for_filter(state.week_filter, today)
        return state

    def save(self, state: FilterState) -> None:
        payload = {
            "weekFilter": state.week_filter.value,
            "viewMode": state.view_mode.value,
            "theme": state.theme.value,
            "lastViewedWeek": format_iso_week(state.selected_week),
        }
        self._storage.set_item(self._key, json.dumps(payload))
        logger.debug(f"Saved settings: {payload}")

    def last_viewed_week(self) -> str | None:
        """Get the ISO week string of the last saved selection."""
        raw = self._storage.get_item(self._key)
        if raw is None:
            return None
        try:
            return json.loads(raw).get("lastViewedWeek")
        except (AttributeError, ValueError) as e:
            raise ValidationError(f"Invalid stored settings: {e}") from e
