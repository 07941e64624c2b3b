"""
Metric catalog
==============

Static registry of the metrics the dashboard can color the map by.
Each entry carries a display label, a chart color and whether the metric is
already a running total in the source data (cumulative) or a per-day flow.

`lookup` never fails: an unknown id gets a gray descriptor labelled with the
id itself.
"""

from __future__ import annotations
from typing import Dict, FrozenSet, List
from .models import MetricDescriptor

DEFAULT_COLOR = "#6b7280"

CUMULATIVE_METRICS: FrozenSet[str] = frozenset({
    "total_cases",
    "total_deaths",
    "total_vaccinations",
})

# Metrics that must all be non-null for a date to be navigable.
CORE_METRICS = (
    "total_cases",
    "total_deaths",
    "total_vaccinations",
    "new_cases_smoothed",
    "new_deaths_smoothed",
)

METRICS: List[MetricDescriptor] = [
    MetricDescriptor("total_cases", "Total Cases", "#f87171", True),
    MetricDescriptor("total_deaths", "Total Deaths", DEFAULT_COLOR, True),
    MetricDescriptor("new_cases_smoothed", "New Cases (7-day avg)", "#60a5fa"),
    MetricDescriptor("new_deaths_smoothed", "New Deaths (7-day avg)", "#4b5563"),
    MetricDescriptor("total_vaccinations", "Total Vaccinations", "#34d399", True),
]

_BY_ID: Dict[str, MetricDescriptor] = {m.id: m for m in METRICS}


def lookup(metric_id: str) -> MetricDescriptor:
    found = _BY_ID.get(metric_id)
    if found is not None:
        return found
    return MetricDescriptor(metric_id, metric_id, DEFAULT_COLOR, is_cumulative(metric_id))


def is_cumulative(metric_id: str) -> bool:
    return metric_id in CUMULATIVE_METRICS
