"""
Aggregation engine
==================

This is the heart of the project. Every function here is a pure function of
(Dataset, SelectionState, EngineConfig): nothing is cached on the dataset and
nothing is mutated, so a renderer can call them again on every selection
change.

1) Per-country snapshots for the map (latest-at-or-before or exact date)
2) Aggregation to date ("upto" mode): cumulative metrics take the latest
   value, flow metrics are summed
3) Global KPIs (World row, or a sum over locations when there is none)
4) Time series for one country and a two-country comparison
5) A composite "most recently known" profile for one country

Missing data is never an error: countries without a value are simply absent
from snapshot dicts and series come back empty.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence
from .catalog import lookup
from .dsa import merge_sort, top_k, union_sorted
from .indices import id_on, ids_up_to
from .models import Dataset, DuplicateRecordError, GlobalStats, Record, SelectionState

SNAPSHOT_POLICIES = ("latest", "exact")
KPI_STRATEGIES = ("auto", "world", "sum")
MODES = ("single", "upto")


@dataclass(frozen=True)
class EngineConfig:
    """Policy knobs for the aggregation engine."""
    snapshot_policy: str = "latest"
    kpi_strategy: str = "auto"
    world_location: str = "World"
    trend_window: int = 30
    top_n: int = 5

    def __post_init__(self) -> None:
        if self.snapshot_policy not in SNAPSHOT_POLICIES:
            raise ValueError(f"snapshot_policy must be one of {SNAPSHOT_POLICIES}")
        if self.kpi_strategy not in KPI_STRATEGIES:
            raise ValueError(f"kpi_strategy must be one of {KPI_STRATEGIES}")


# ---------------- Record access ----------------
def country_records(dataset: Dataset, country: str) -> List[Record]:
    """All records of `country`, ascending by date."""
    return [dataset.records[i] for i in dataset.index.by_location.get(country, [])]


def records_up_to(dataset: Dataset, country: str, d: date) -> List[Record]:
    return [dataset.records[i] for i in ids_up_to(dataset.index, country, d)]


def _latest_of(rows: Sequence[Record]) -> Optional[Record]:
    """Return the record with the maximum date; two records on that date is a data error."""
    best: Optional[Record] = None
    tied = False
    for r in rows:
        if best is None or r.date > best.date:
            best, tied = r, False
        elif r.date == best.date:
            tied = True
    if tied and best is not None:
        raise DuplicateRecordError(f"Duplicate record for {best.location!r} on {best.date.isoformat()}")
    return best


# ---------------- Snapshots ----------------
def snapshot_latest(dataset: Dataset, d: date, metric_id: str) -> Dict[str, float]:
    """Per country: the latest value at or before `d` that is non-null and > 0."""
    result: Dict[str, float] = {}
    for country in dataset.countries:
        for i in reversed(ids_up_to(dataset.index, country, d)):
            v = dataset.records[i].value(metric_id)
            if v is not None and v > 0:
                result[country] = v
                break
    return result


def snapshot_exact(dataset: Dataset, d: date, metric_id: str) -> Dict[str, float]:
    """Per country: the value on exactly `d` (countries without one are omitted)."""
    result: Dict[str, float] = {}
    for country in dataset.countries:
        i = id_on(dataset.index, country, d)
        if i < 0:
            continue
        v = dataset.records[i].value(metric_id)
        if v is not None:
            result[country] = v
    return result


def aggregate_up_to(dataset: Dataset, d: date, metric_id: str) -> Dict[str, float]:
    """Aggregate each country's records with date <= d.

    Cumulative metrics take the value of the latest record (never a sum);
    flow metrics are summed with null treated as 0.
    """
    cumulative = lookup(metric_id).is_cumulative
    result: Dict[str, float] = {}
    for country in dataset.countries:
        rows = records_up_to(dataset, country, d)
        if not rows:
            continue
        if cumulative:
            latest = _latest_of(rows)
            v = latest.value(metric_id) if latest else None
            if v is not None:
                result[country] = v
        else:
            result[country] = sum(r.value(metric_id) or 0.0 for r in rows)
    return result


def metric_snapshot(dataset: Dataset, selection: SelectionState, config: EngineConfig = EngineConfig()) -> Dict[str, float]:
    """Snapshot for the current selection (drives the map and KPI card)."""
    if selection.selected_date is None:
        return {}
    if selection.mode == "upto":
        return aggregate_up_to(dataset, selection.selected_date, selection.selected_metric)
    if selection.mode != "single":
        raise ValueError(f"mode must be one of {MODES}")
    if config.snapshot_policy == "exact":
        return snapshot_exact(dataset, selection.selected_date, selection.selected_metric)
    return snapshot_latest(dataset, selection.selected_date, selection.selected_metric)


# ---------------- KPIs ----------------
def global_stats(dataset: Dataset, d: date, config: EngineConfig = EngineConfig()) -> GlobalStats:
    """Global totals as of `d`.

    The World row is used directly when present (summing countries would
    double-count aggregates); otherwise the latest record of every other
    location is summed.
    """
    world_rows = records_up_to(dataset, config.world_location, d)
    use_world = config.kpi_strategy == "world" or (config.kpi_strategy == "auto" and bool(world_rows))

    if use_world:
        latest = _latest_of(world_rows)
        cases = (latest.total_cases if latest else None) or 0.0
        deaths = (latest.total_deaths if latest else None) or 0.0
        vaccinations = (latest.total_vaccinations if latest else None) or 0.0
    else:
        cases = deaths = vaccinations = 0.0
        for country in dataset.countries:
            if country == config.world_location:
                continue
            latest = _latest_of(records_up_to(dataset, country, d))
            if latest is None:
                continue
            cases += latest.total_cases or 0.0
            deaths += latest.total_deaths or 0.0
            vaccinations += latest.total_vaccinations or 0.0

    return make_stats(cases, deaths, vaccinations)


def make_stats(cases: float, deaths: float, vaccinations: float) -> GlobalStats:
    """Build GlobalStats; both rates are 0 when there are no cases."""
    if not cases:
        return GlobalStats(cases, deaths, vaccinations, 0.0, 0.0)
    return GlobalStats(
        total_cases=cases,
        total_deaths=deaths,
        total_vaccinations=vaccinations,
        recovery_rate=(cases - deaths) / cases * 100,
        fatality_rate=deaths / cases * 100,
    )


def global_kpi(snapshot: Dict[str, float], world_location: str = "World") -> float:
    """Sum of a snapshot's values, excluding the world aggregate row."""
    return sum(v for k, v in snapshot.items() if k != world_location)


def previous_day_kpi(dataset: Dataset, selection: SelectionState, config: EngineConfig = EngineConfig()) -> Optional[float]:
    """KPI of the exact-date snapshot on the day before the selected date."""
    if selection.selected_date is None:
        return None
    prev = selection.selected_date - timedelta(days=1)
    return global_kpi(snapshot_exact(dataset, prev, selection.selected_metric), config.world_location)


def calculate_change(current: Optional[float], previous: Optional[float]) -> Dict[str, Any]:
    """Percent change for KPI cards: {"value": abs %, "increase": bool}."""
    if not previous or current is None:
        return {"value": 0.0, "increase": False}
    change = (current - previous) / previous * 100
    return {"value": abs(change), "increase": change > 0}


def top_countries(snapshot: Dict[str, float], limit: int = 5, world_location: str = "World") -> List[Dict[str, Any]]:
    items = [(k, v) for k, v in snapshot.items() if k != world_location]
    return [{"country": k, "value": v} for k, v in top_k(items, limit)]


def countries_on_date(dataset: Dataset, countries: Sequence[str], d: date, metric_id: str) -> List[Dict[str, Any]]:
    """Bar-chart rows for an exact date (0 when a country has no value)."""
    out: List[Dict[str, Any]] = []
    for c in countries:
        i = id_on(dataset.index, c, d)
        v = dataset.records[i].value(metric_id) if i >= 0 else None
        out.append({"country": c, "value": v if v is not None else 0.0})
    return out


# ---------------- Series ----------------
def full_series(records: Sequence[Record], metric_id: str) -> List[Dict[str, Any]]:
    """All non-null points, ascending by date."""
    rows = [r for r in records if r.value(metric_id) is not None]
    rows = merge_sort(rows, key=lambda r: r.date)
    return [{"date": r.date_key(), "value": r.value(metric_id)} for r in rows]


def windowed_series(records: Sequence[Record], metric_id: str, limit: int = 30) -> List[Dict[str, Any]]:
    """The last `limit` non-null, non-zero points, ascending by date."""
    rows = [r for r in records if r.value(metric_id)]
    rows = merge_sort(rows, key=lambda r: r.date)
    if limit <= 0:
        return []
    return [{"date": r.date_key(), "value": r.value(metric_id)} for r in rows[-limit:]]


def comparison_series(
    records_a: Sequence[Record],
    records_b: Sequence[Record],
    metric_id: str,
    name_a: str,
    name_b: str,
) -> List[Dict[str, Any]]:
    """One row per date in the union of both countries' dates.

    Each row is {"date": ..., name_a: v1, name_b: v2}; a country without a
    value on that date contributes 0.
    """
    values_a = {r.date_key(): r.value(metric_id) or 0.0 for r in records_a}
    values_b = {r.date_key(): r.value(metric_id) or 0.0 for r in records_b}
    dates = union_sorted(sorted(values_a), sorted(values_b))
    return [
        {"date": d, name_a: values_a.get(d, 0.0), name_b: values_b.get(d, 0.0)}
        for d in dates
    ]


# ---------------- Country profile ----------------
def _is_known(v: Any) -> bool:
    return v is not None and v != 0 and v != ""


def latest_country_data(dataset: Dataset, country: str, as_of: date) -> Dict[str, Any]:
    """Most recently known value of every field for `country` at or before `as_of`.

    Fields are scanned newest-first and each takes its first non-null,
    non-empty, non-zero value, so different fields may come from different
    dates. `location` and `date` always describe the newest record.
    Returns {} when the country has no record in range.
    """
    rows = records_up_to(dataset, country, as_of)
    if not rows:
        return {}
    rows = rows[::-1]
    out: Dict[str, Any] = {}
    for name in Record.__dataclass_fields__:
        if name in ("location", "date"):
            continue
        for r in rows:
            v = getattr(r, name)
            if _is_known(v):
                out[name] = v
                break
    out["location"] = country
    out["date"] = rows[0].date
    return out


def vaccination_breakdown(records: Sequence[Record], as_of: date) -> List[Dict[str, Any]]:
    """Stacked-bar row for the latest record carrying vaccination percentages."""
    rows = [r for r in records if r.date <= as_of]
    rows = merge_sort(rows, key=lambda r: r.date, reverse=True)
    latest = next(
        (r for r in rows
         if r.people_vaccinated_per_hundred is not None or r.people_fully_vaccinated_per_hundred is not None),
        None,
    )
    if latest is None:
        return []
    vaccinated = latest.people_vaccinated_per_hundred or 0.0
    fully = latest.people_fully_vaccinated_per_hundred or 0.0
    first_dose_only = vaccinated - fully
    return [{
        "name": "Vaccination Status",
        "First Dose Only": first_dose_only if first_dose_only > 0 else 0.0,
        "Fully Vaccinated": fully,
        "Unvaccinated": 100 - vaccinated,
    }]


def cases_deaths_breakdown(records: Sequence[Record], as_of: date) -> List[Dict[str, Any]]:
    rows = [r for r in records if r.date <= as_of]
    latest = _latest_of(rows)
    if latest is None:
        return []
    return [
        {"name": "Cases", "value": latest.total_cases or 0.0, "fill": lookup("total_cases").color},
        {"name": "Deaths", "value": latest.total_deaths or 0.0, "fill": lookup("total_deaths").color},
    ]


# ---------------- Defaults ----------------
def default_selection(dataset: Dataset, world_location: str = "World") -> SelectionState:
    """Initial selection right after the dataset has loaded."""
    countries = dataset.countries
    selected = world_location if world_location in countries else (countries[0] if countries else None)
    compare = next((c for c in countries if c != selected and c != world_location), None)
    if compare is None and len(countries) > 1:
        compare = countries[1]
    return SelectionState(
        selected_date=dataset.date_range.max,
        selected_metric="total_cases",
        mode="single",
        selected_country=selected,
        compare_country=compare,
    )
