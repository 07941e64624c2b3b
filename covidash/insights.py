"""
Insight generation and display formatting
=========================================

Insights are produced by a fixed, ordered list of rule templates:

1. exactly one overview (global wording for the World, otherwise per country)
2. a rising/declining cases insight when the recent case trend is non-zero
3. a vaccination-progress insight when the latest record has a fully
   vaccinated share above zero

The trend compares the mean of the last 5 days of the recent window with the
mean of the 5 days before them. There is no randomness and no model.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence
import math
from .dsa import merge_sort
from .models import GlobalStats, Insight, Record

NO_DATA = "No data"


def format_value(value: Optional[float], precision: int = 1) -> str:
    """Compact number for cards and tooltips (1.2K, 3.4M, 5.6B)."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return NO_DATA
    if value > 1e9:
        return f"{value / 1e9:.{precision}f}B"
    if value > 1e6:
        return f"{value / 1e6:.{precision}f}M"
    if value > 1e3:
        return f"{value / 1e3:.{precision}f}K"
    return f"{float(value):.{precision}f}"


def format_percent(value: Optional[float], precision: int = 2) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return NO_DATA
    return f"{float(value):.{precision}f}%"


@dataclass(frozen=True)
class Trends:
    case_trend: float = 0.0
    death_trend: float = 0.0


def _trend(recent: Sequence[Record], metric_id: str) -> float:
    if len(recent) <= 10:
        return 0.0
    last = sum(r.value(metric_id) or 0.0 for r in recent[-5:]) / 5
    before = sum(r.value(metric_id) or 0.0 for r in recent[-10:-5]) / 5
    return last - before


def compute_trends(records: Sequence[Record], as_of: date, window: int = 30) -> Trends:
    """Case/death trend over the `window` most recent records at or before `as_of`."""
    rows = merge_sort([r for r in records if r.date <= as_of], key=lambda r: r.date)
    recent = rows[-window:] if window > 0 else []
    return Trends(
        case_trend=_trend(recent, "new_cases_smoothed"),
        death_trend=_trend(recent, "new_deaths_smoothed"),
    )


def generate_insights(
    records: Sequence[Record],
    selected_country: Optional[str],
    as_of: Optional[date],
    stats: GlobalStats,
    window: int = 30,
    world_location: str = "World",
) -> List[Insight]:
    """Build the insight cards for one country's records (ascending or not)."""
    if as_of is None or not selected_country:
        return []
    rows = merge_sort([r for r in records if r.date <= as_of], key=lambda r: r.date)
    if not rows:
        return []
    latest = rows[-1]
    trends = compute_trends(rows, as_of, window)
    insights: List[Insight] = []

    if selected_country == world_location:
        insights.append(Insight(
            kind="overview",
            title="Global Pandemic Status",
            text=(
                f"As of {as_of.isoformat()}, the world has recorded "
                f"{format_value(stats.total_cases)} COVID-19 cases and "
                f"{format_value(stats.total_deaths)} deaths."
            ),
            icon="globe",
        ))
    else:
        insights.append(Insight(
            kind="overview",
            title=f"{selected_country} Overview",
            text=(
                f"{selected_country} has recorded {format_value(latest.total_cases)} cases and "
                f"{format_value(latest.total_deaths)} deaths as of {latest.date.isoformat()}."
            ),
            icon="map-pin",
        ))

    if trends.case_trend > 0:
        insights.append(Insight(
            kind="cases_rising",
            title="Rising Cases",
            text=(
                f"{selected_country} is experiencing an upward trend in new cases, with a "
                f"{format_value(trends.case_trend, 0)} average daily increase compared to the previous period."
            ),
            icon="trending-up",
        ))
    elif trends.case_trend < 0:
        insights.append(Insight(
            kind="cases_declining",
            title="Declining Cases",
            text=(
                f"{selected_country} is showing a downward trend in new cases, with a "
                f"{format_value(abs(trends.case_trend), 0)} average daily decrease compared to the previous period."
            ),
            icon="trending-down",
        ))

    fully = latest.people_fully_vaccinated_per_hundred
    if fully is not None and fully > 0:
        insights.append(Insight(
            kind="vaccination",
            title="Vaccination Progress",
            text=(
                f"{format_percent(fully)} of the population in {selected_country} "
                f"is fully vaccinated against COVID-19."
            ),
            icon="thermometer",
        ))

    return insights
