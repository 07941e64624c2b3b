"""
Data model (Record, Dataset, SelectionState)
============================================

Each row of the COVID-19 time-series CSV is converted into a `Record` object.
Records are immutable (`frozen=True`) so that:
- the dataset loaded at start-up can never be modified by a view, and
- every derived structure is a pure function of (Dataset, SelectionState).

The record schema is closed: every numeric column the dashboard reads is an
explicit field, and a value that is missing in the source is `None`.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Dict, List, Optional, Tuple


class DuplicateRecordError(ValueError):
    """Raised when a location has more than one record for the same date."""


@dataclass(frozen=True)
class Record:
    """One row of the time-series dataset (one location on one date)."""
    location: str
    date: date
    iso_code: str = ""
    continent: str = ""

    # cases / deaths
    total_cases: Optional[float] = None
    new_cases: Optional[float] = None
    new_cases_smoothed: Optional[float] = None
    total_deaths: Optional[float] = None
    new_deaths: Optional[float] = None
    new_deaths_smoothed: Optional[float] = None
    total_cases_per_million: Optional[float] = None
    new_cases_per_million: Optional[float] = None
    new_cases_smoothed_per_million: Optional[float] = None
    total_deaths_per_million: Optional[float] = None
    new_deaths_per_million: Optional[float] = None
    new_deaths_smoothed_per_million: Optional[float] = None

    # hospitals
    hosp_patients: Optional[float] = None
    hosp_patients_per_million: Optional[float] = None

    # vaccinations
    total_vaccinations: Optional[float] = None
    people_vaccinated: Optional[float] = None
    people_fully_vaccinated: Optional[float] = None
    total_boosters: Optional[float] = None
    people_vaccinated_per_hundred: Optional[float] = None
    people_fully_vaccinated_per_hundred: Optional[float] = None
    total_boosters_per_hundred: Optional[float] = None

    # demographics (usually reported once and repeated sparsely)
    population: Optional[float] = None
    population_density: Optional[float] = None
    median_age: Optional[float] = None
    aged_65_older: Optional[float] = None
    gdp_per_capita: Optional[float] = None
    diabetes_prevalence: Optional[float] = None
    hospital_beds_per_thousand: Optional[float] = None
    life_expectancy: Optional[float] = None

    def value(self, metric_id: str) -> Optional[float]:
        """Return the numeric value of `metric_id`, or None if absent/unknown."""
        if metric_id not in NUMERIC_FIELDS:
            return None
        return getattr(self, metric_id)

    def date_key(self) -> str:
        """Return the calendar-day key (YYYY-MM-DD) used by chart series."""
        return self.date.isoformat()


IDENTIFIER_FIELDS: Tuple[str, ...] = ("location", "date", "iso_code", "continent")
NUMERIC_FIELDS: Tuple[str, ...] = tuple(
    f.name for f in fields(Record) if f.name not in IDENTIFIER_FIELDS
)


@dataclass(frozen=True)
class DateRange:
    """Navigable date range. Both ends are None when no date has core data."""
    min: Optional[date] = None
    max: Optional[date] = None

    def contains(self, d: date) -> bool:
        if self.min is None or self.max is None:
            return False
        return self.min <= d <= self.max


@dataclass
class Dataset:
    """All records loaded for the session plus derived lookup structures.

    The dataset is written once by the loader and read-only afterwards.
    `index` maps each location to its record positions sorted by date.
    """
    records: List[Record]
    date_range: DateRange = field(default_factory=DateRange)
    index: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # indices imports this module
        from .indices import build_index
        self.index = build_index(self.records)

    @property
    def countries(self) -> List[str]:
        return self.index.locations

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class MetricDescriptor:
    """Static catalog entry for one metric."""
    id: str
    label: str
    color: str
    is_cumulative: bool = False


@dataclass(frozen=True)
class SelectionState:
    """User-controlled parameters that drive every recomputation.

    mode: "single" (value at the selected date) or "upto" (aggregate to date).
    """
    selected_date: Optional[date] = None
    selected_metric: str = "total_cases"
    mode: str = "single"
    selected_country: Optional[str] = None
    compare_country: Optional[str] = None


@dataclass(frozen=True)
class GlobalStats:
    total_cases: float = 0.0
    total_deaths: float = 0.0
    total_vaccinations: float = 0.0
    recovery_rate: float = 0.0
    fatality_rate: float = 0.0


@dataclass(frozen=True)
class Insight:
    """One narrative insight card (kind is used by renderers to pick an icon)."""
    kind: str
    title: str
    text: str
    icon: str


@dataclass(frozen=True)
class GeoData:
    """Parsed GeoJSON FeatureCollection."""
    features: List[Dict[str, Any]]

    @staticmethod
    def feature_name(feature: Dict[str, Any]) -> str:
        name = (feature.get("properties") or {}).get("name")
        return str(name) if name else ""

    @property
    def names(self) -> List[str]:
        return [n for n in (self.feature_name(f) for f in self.features) if n]
