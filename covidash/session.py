"""
Dashboard session (selection state owner)
=========================================

The session plays the role of the UI shell: it holds the loaded sources,
owns the current `SelectionState`, validates user input before changing it,
and asks the engine for fresh view-models.

- Either source may still be missing (failed or pending load). Views then
  return empty results; nothing raises.
- Invalid input (bad date text, date outside the navigable range, unknown
  country) is ignored and the previous selection is kept.
- Selections are immutable, so undo/redo just keeps stacks of old states.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Tuple, Union
import logging
from . import engine
from .choropleth import build_map_view
from .engine import EngineConfig
from .insights import Trends, compute_trends, generate_insights
from .models import Dataset, GeoData, GlobalStats, Insight, NUMERIC_FIELDS, SelectionState
from .names import NameReconciler

logger = logging.getLogger(__name__)

# Distinct (date, metric, mode, config) snapshots kept per session.
SNAPSHOT_CACHE_SIZE = 64


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Parse YYYY-MM-DD or an ISO timestamp to a calendar day.

    Timestamps (datetime objects, or text with a "T"/space separated time)
    are truncated to their day. Returns None when the input is invalid.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    text = str(value).strip()
    day, clock = text, ""
    for sep in ("T", " "):
        if sep in text:
            day, _, clock = text.partition(sep)
            break
    try:
        parsed = date.fromisoformat(day)
        if clock:
            time.fromisoformat(clock)
    except ValueError:
        return None
    return parsed


@dataclass
class DashboardSession:
    """Selection owner that recomputes engine views on demand."""
    dataset: Optional[Dataset] = None
    geo: Optional[GeoData] = None
    config: EngineConfig = field(default_factory=EngineConfig)
    reconciler: NameReconciler = field(default_factory=NameReconciler)
    state: SelectionState = field(default_factory=SelectionState)
    # Stores state-changing commands (for reproducibility in reports)
    command_log: List[str] = field(default_factory=list)
    # File name of the loaded dataset, cited in reports
    source_file: Optional[str] = None

    _undo: List[SelectionState] = field(default_factory=list, init=False)
    _redo: List[SelectionState] = field(default_factory=list, init=False)
    _snapshot_cache: Dict[Tuple[Any, ...], Dict[str, float]] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        if self.dataset is not None and self.state.selected_date is None:
            self.state = engine.default_selection(self.dataset, self.config.world_location)

    @property
    def ready(self) -> bool:
        return self.dataset is not None

    @property
    def map_ready(self) -> bool:
        return self.geo is not None

    def attach_dataset(self, dataset: Dataset) -> None:
        """Install a freshly loaded dataset and reset to its default selection."""
        self.dataset = dataset
        self._snapshot_cache.clear()
        self._undo.clear()
        self._redo.clear()
        self.state = engine.default_selection(dataset, self.config.world_location)

    def attach_geo(self, geo: GeoData) -> None:
        self.geo = geo

    # ---------------- History (Stacks) ----------------
    def _apply(self, new_state: SelectionState) -> bool:
        if new_state == self.state:
            return True
        self._undo.append(self.state)
        self._redo.clear()
        self.state = new_state
        return True

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.state)
        self.state = self._undo.pop()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.state)
        self.state = self._redo.pop()
        return True

    # ---------------- Selection ----------------
    def set_date(self, value: Union[str, date]) -> bool:
        d = parse_date(value)
        if d is None or not self.ready or not self.dataset.date_range.contains(d):
            logger.debug("Ignoring date input %r", value)
            return False
        return self._apply(replace(self.state, selected_date=d))

    def set_metric(self, metric_id: str) -> bool:
        if metric_id not in NUMERIC_FIELDS:
            logger.debug("Ignoring unknown metric %r", metric_id)
            return False
        return self._apply(replace(self.state, selected_metric=metric_id))

    def set_mode(self, mode: str) -> bool:
        if mode not in engine.MODES:
            logger.debug("Ignoring unknown mode %r", mode)
            return False
        return self._apply(replace(self.state, mode=mode))

    def select_country(self, country: str) -> bool:
        if not self.ready or country not in self.dataset.index.by_location:
            logger.debug("Ignoring unknown country %r", country)
            return False
        return self._apply(replace(self.state, selected_country=country))

    def set_compare(self, country: str) -> bool:
        if not self.ready or country not in self.dataset.index.by_location:
            logger.debug("Ignoring unknown comparison country %r", country)
            return False
        return self._apply(replace(self.state, compare_country=country))

    def select_from_map(self, feature_name: str) -> bool:
        """Select the country behind a clicked map feature."""
        return self.select_country(self.reconciler.reconcile(feature_name))

    # ---------------- Views ----------------
    def snapshot(self) -> Dict[str, float]:
        if not self.ready or self.state.selected_date is None:
            return {}
        key = (self.state.selected_date, self.state.selected_metric, self.state.mode, self.config)
        if key not in self._snapshot_cache:
            if len(self._snapshot_cache) >= SNAPSHOT_CACHE_SIZE:
                self._snapshot_cache.clear()
            self._snapshot_cache[key] = engine.metric_snapshot(self.dataset, self.state, self.config)
        return dict(self._snapshot_cache[key])

    def global_stats(self) -> GlobalStats:
        if not self.ready or self.state.selected_date is None:
            return GlobalStats()
        return engine.global_stats(self.dataset, self.state.selected_date, self.config)

    def kpi(self) -> Dict[str, Any]:
        """Global KPI for the selected metric with its day-over-day change."""
        if not self.ready:
            return {}
        current = engine.global_kpi(self.snapshot(), self.config.world_location)
        previous = engine.previous_day_kpi(self.dataset, self.state, self.config)
        return {
            "metric": self.state.selected_metric,
            "value": current,
            "previous": previous,
            "change": engine.calculate_change(current, previous),
        }

    def top(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return engine.top_countries(self.snapshot(), limit or self.config.top_n, self.config.world_location)

    def _records(self, country: Optional[str]):
        if not self.ready or not country:
            return []
        return engine.country_records(self.dataset, country)

    def series(self, country: Optional[str] = None, metric_id: Optional[str] = None) -> List[Dict[str, Any]]:
        country = country or self.state.selected_country
        return engine.full_series(self._records(country), metric_id or self.state.selected_metric)

    def recent_series(self, limit: Optional[int] = None, metric_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return engine.windowed_series(
            self._records(self.state.selected_country),
            metric_id or self.state.selected_metric,
            limit or self.config.trend_window,
        )

    def comparison(self, metric_id: Optional[str] = None) -> List[Dict[str, Any]]:
        a, b = self.state.selected_country, self.state.compare_country
        if not a or not b:
            return []
        return engine.comparison_series(
            self._records(a), self._records(b), metric_id or self.state.selected_metric, a, b
        )

    def profile(self, country: Optional[str] = None) -> Dict[str, Any]:
        country = country or self.state.selected_country
        if not self.ready or not country or self.state.selected_date is None:
            return {}
        return engine.latest_country_data(self.dataset, country, self.state.selected_date)

    def trends(self) -> Trends:
        if self.state.selected_date is None:
            return Trends()
        return compute_trends(
            self._records(self.state.selected_country), self.state.selected_date, self.config.trend_window
        )

    def insights(self) -> List[Insight]:
        return generate_insights(
            self._records(self.state.selected_country),
            self.state.selected_country,
            self.state.selected_date,
            self.global_stats(),
            window=self.config.trend_window,
            world_location=self.config.world_location,
        )

    def vaccination(self) -> List[Dict[str, Any]]:
        if self.state.selected_date is None:
            return []
        return engine.vaccination_breakdown(self._records(self.state.selected_country), self.state.selected_date)

    def cases_deaths(self) -> List[Dict[str, Any]]:
        if self.state.selected_date is None:
            return []
        return engine.cases_deaths_breakdown(self._records(self.state.selected_country), self.state.selected_date)

    def map_view(self) -> Dict[str, Any]:
        if not self.ready or not self.map_ready:
            return {}
        return build_map_view(
            self.geo, self.snapshot(), self.state.selected_metric, self.state.mode, self.reconciler
        )
