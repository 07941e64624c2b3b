"""
Choropleth view-model
=====================

Turns a per-country snapshot into per-feature fill colors for the world map.
The renderer only has to paint `fill` and show `tooltip`; it never needs to
know about name aliases or metric semantics.

Colors come from matplotlib's sequential "Reds" colormap, normalised over the
min/max of the values present in the snapshot. Features without a value are
drawn in a neutral gray.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import numpy as np
import matplotlib
from matplotlib.colors import to_hex
from .catalog import lookup
from .insights import format_value
from .models import GeoData
from .names import NameReconciler

MISSING_FILL = "#e5e7eb"
COLORMAP = "Reds"


def value_domain(snapshot: Dict[str, float]) -> Tuple[float, float]:
    """(min, max) of the snapshot values; (0, 1) when there are none."""
    values = np.array([v for v in snapshot.values() if v is not None], dtype=float)
    values = values[np.isfinite(values)]
    if values.size == 0:
        return 0.0, 1.0
    return float(values.min()), float(values.max())


def fill_color(value: Optional[float], domain: Tuple[float, float], cmap_name: str = COLORMAP) -> str:
    if value is None or not np.isfinite(value):
        return MISSING_FILL
    lo, hi = domain
    t = 0.5 if hi == lo else float(np.clip((value - lo) / (hi - lo), 0.0, 1.0))
    return to_hex(matplotlib.colormaps[cmap_name](t))


def tooltip(feature_name: str, value: Optional[float], metric_id: str, mode: str) -> str:
    precision = 3 if value is not None and value > 1e6 else 2
    suffix = " (cumulative)" if mode == "upto" and not lookup(metric_id).is_cumulative else ""
    return f"{feature_name} | {lookup(metric_id).label}: {format_value(value, precision)}{suffix}"


def build_map_view(
    geo: GeoData,
    snapshot: Dict[str, float],
    metric_id: str,
    mode: str = "single",
    reconciler: Optional[NameReconciler] = None,
) -> Dict[str, Any]:
    """Per-feature render data plus the legend domain.

    Returns {"domain": (min, max), "color": metric color, "features": [...]},
    each feature being {"name", "dataset_name", "value", "fill", "tooltip"}.
    """
    reconciler = reconciler or NameReconciler()
    domain = value_domain(snapshot)
    features: List[Dict[str, Any]] = []
    for feat in geo.features:
        name = geo.feature_name(feat)
        dataset_name = reconciler.reconcile(name) if name else ""
        value = snapshot.get(dataset_name)
        features.append({
            "name": name,
            "dataset_name": dataset_name,
            "value": value,
            "fill": fill_color(value, domain),
            "tooltip": tooltip(name, value, metric_id, mode),
        })
    return {"domain": domain, "color": lookup(metric_id).color, "features": features}


def coverage(geo: GeoData, countries: List[str], reconciler: Optional[NameReconciler] = None) -> Dict[str, List[str]]:
    """Split map feature names into those the dataset knows and those it does not."""
    reconciler = reconciler or NameReconciler()
    known = set(countries)
    matched: List[str] = []
    unmatched: List[str] = []
    for name in geo.names:
        (matched if reconciler.reconcile(name) in known else unmatched).append(name)
    return {"matched": matched, "unmatched": unmatched}
